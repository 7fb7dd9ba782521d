"""Change-log emitter.

record() runs after the primary mutation has committed and never raises:
a failed audit write is rolled back, logged and dropped.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from agency_api.db.models import ENTRY_MANUAL, ENTRY_SYSTEM, ChangeLogEntry

logger = logging.getLogger(__name__)


def record(
    db: Session,
    entity_type: str,
    entity_id: str,
    client_id: str,
    author_id: Optional[str],
    title: str,
    body: str,
) -> Optional[ChangeLogEntry]:
    """Append a change-log entry; system entries have no author.

    Returns:
        The stored entry, or None when the write failed
    """
    entry = ChangeLogEntry(
        entity_type=entity_type,
        entity_id=entity_id,
        client_id=client_id,
        user_id=author_id,
        entry_type=ENTRY_MANUAL if author_id else ENTRY_SYSTEM,
        title=title[:200],
        body=body,
    )
    try:
        db.add(entry)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(
            "Change log write failed",
            exc_info=True,
            extra={
                "event": "change_log.record_failed",
                "entity_type": entity_type,
                "entity_id": entity_id,
            },
        )
        return None

    logger.info(
        "Change log entry recorded",
        extra={
            "event": "change_log.recorded",
            "entity_type": entity_type,
            "entity_id": entity_id,
            "entry_type": entry.entry_type,
        },
    )
    return entry
