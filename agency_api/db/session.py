"""Database session management.

The engine and session factory live on app.state (built once by create_app);
get_db hands each request its own session from that factory.
"""

from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Get database session.

    Yields:
        Session: SQLAlchemy session
    """
    db = request.app.state.sessionmaker()
    try:
        yield db
    finally:
        db.close()
