"""Schema creation and first-owner bootstrap.

Usage:
    python -m agency_api.db.seed

Environment variables:
    DATABASE_URL: Target database (defaults to local SQLite outside production)
    OWNER_EMAIL / OWNER_PASSWORD / OWNER_NAME: First owner credentials

Exit codes:
    0: Schema ready (owner created or already present)
    2: ERROR (env or connection failure)
"""

import logging
import sys
from typing import Optional

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agency_api.auth.passwords import hash_password, validate_new_password
from agency_api.config import env
from agency_api.db.engine import build_engine, build_sessionmaker
from agency_api.db.models import ROLE_OWNER, Base, User
from agency_api.errors import AppError
from agency_api.services.common import require_email
from agency_api.services.settings import load_settings

logger = logging.getLogger(__name__)


def create_schema(engine: Engine) -> None:
    """Create every table that does not exist yet (idempotent)."""
    Base.metadata.create_all(engine)
    logger.info("Schema ready", extra={"event": "db.schema.created"})


def seed_owner(db: Session, email: str, password: str, name: str) -> Optional[User]:
    """Create the first owner when the agency has none.

    Returns:
        The new owner, or None when an owner already exists
    """
    if db.query(User.id).filter(User.role == ROLE_OWNER).first() is not None:
        logger.info("Owner already present, skipping bootstrap", extra={"event": "db.seed.skipped"})
        return None

    validate_new_password(password)
    owner = User(
        name=name,
        email=require_email(email),
        password_hash=hash_password(password),
        role=ROLE_OWNER,
        status="active",
    )
    db.add(owner)
    db.commit()
    logger.info("Owner bootstrapped", extra={"event": "db.seed.owner_created", "target_user_id": owner.id})
    return owner


def main() -> int:
    logging.basicConfig(level=env.get_log_level(), format="%(levelname)s %(name)s: %(message)s")
    try:
        engine = build_engine(env.get_database_url())
        create_schema(engine)
        bootstrap = env.get_owner_bootstrap()
        with build_sessionmaker(engine)() as db:
            seed_owner(db, bootstrap["email"], bootstrap["password"], bootstrap["name"])
            load_settings(db)
    except (AppError, ValueError, SQLAlchemyError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
