from __future__ import annotations

import logging
from uuid import uuid4

from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from services.checkout.app.db.models import EventLog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def log_event(
    db: Session,
    *,
    shopper_id: str,
    entity_type: EntityTypeV1,
    entity_id: str,
    event_type: EventTypeV1,
    event_payload: dict,
) -> None:
    db.add(
        EventLog(
            id=uuid4().hex,
            shopper_id=shopper_id,
            entity_type=entity_type.value,
            entity_id=entity_id,
            event_type=event_type.value,
            event_payload_json=event_payload,
        )
    )


class AuditRecorder:
    """Writes audit events for one shopper session, one short transaction per event."""

    def __init__(self, sessions: sessionmaker, shopper_id: str) -> None:
        self._sessions = sessions
        self.shopper_id = shopper_id

    def record(
        self,
        entity_type: EntityTypeV1,
        entity_id: str,
        event_type: EventTypeV1,
        payload: dict | None = None,
    ) -> None:
        db = self._sessions()
        try:
            log_event(
                db,
                shopper_id=self.shopper_id,
                entity_type=entity_type,
                entity_id=entity_id,
                event_type=event_type,
                event_payload=payload or {},
            )
            db.commit()
        except SQLAlchemyError:
            # The audit trail must not break the checkout it describes.
            db.rollback()
            logger.exception(
                "Failed to record %s for shopper %s", event_type.value, self.shopper_id
            )
        finally:
            db.close()
