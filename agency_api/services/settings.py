"""Agency-wide settings: a single row, created on first read."""

import logging

from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal
from agency_api.db.models import AgencySettings
from agency_api.policy import Action, Resource, authorize
from agency_api.schemas import SettingsUpdate
from agency_api.services.common import apply_updates

logger = logging.getLogger(__name__)

DEFAULT_AGENCY_NAME = "My Agency"


def load_settings(db: Session) -> AgencySettings:
    settings = db.query(AgencySettings).order_by(AgencySettings.updated_at.asc()).first()
    if settings is None:
        settings = AgencySettings(agency_name=DEFAULT_AGENCY_NAME)
        db.add(settings)
        db.commit()
    return settings


def get_settings(db: Session, principal: Principal) -> AgencySettings:
    authorize(principal, Action.VIEW_ONE, Resource.SETTINGS)
    return load_settings(db)


def update_settings(db: Session, principal: Principal, payload: SettingsUpdate) -> AgencySettings:
    authorize(principal, Action.UPDATE, Resource.SETTINGS)
    settings = load_settings(db)
    changes = apply_updates(settings, payload)
    db.commit()
    logger.info(
        "Agency settings updated",
        extra={"event": "settings.updated", "fields": sorted(changes)},
    )
    return settings
