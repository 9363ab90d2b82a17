from __future__ import annotations

from fastapi import APIRouter, Depends
from packages.shared.schemas.events import EntityTypeV1, EventTypeV1, EventV1
from services.checkout.app.db.deps import get_db
from services.checkout.app.db.models import EventLog
from sqlalchemy.orm import Session

router = APIRouter()


@router.get("/v1/events", response_model=list[EventV1])
def list_events(
    shopper_id: str,
    event_type: EventTypeV1 | None = None,
    db: Session = Depends(get_db),
) -> list[EventV1]:
    query = db.query(EventLog).filter(EventLog.shopper_id == shopper_id)
    if event_type is not None:
        query = query.filter(EventLog.event_type == event_type.value)

    rows = query.order_by(EventLog.created_at.asc()).limit(500).all()

    return [
        EventV1(
            id=r.id,
            shopper_id=r.shopper_id,
            entity_type=EntityTypeV1(r.entity_type),
            entity_id=r.entity_id,
            event_type=EventTypeV1(r.event_type),
            payload=r.event_payload_json,
            created_at=r.created_at.isoformat(),
        )
        for r in rows
    ]
