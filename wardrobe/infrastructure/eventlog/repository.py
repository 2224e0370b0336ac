"""
Event log repository - append-only audit trail of budget mutations
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from wardrobe.infrastructure.db.models import EventLog


class EventLogRepository:
    """
    Audit trail writer and reader

    Events are written in the caller's unit of work (flush, never commit): an
    event exists exactly when the change it describes was committed, and a
    rolled-back conflict leaves no trace.
    """

    def __init__(self, db: Session):
        self.db = db

    def append_event(
        self,
        user_id: int,
        event_type: str,
        payload: Dict[str, Any],
        actor_user_id: Optional[int] = None,
        occurred_at: Optional[datetime] = None,
    ) -> int:
        """
        Append one event; budget_id is lifted from the payload for filtering

        Args:
            user_id: budget owner
            event_type: e.g. "budget_transaction_recorded"
            payload: JSON-serializable event data
            actor_user_id: who performed the change, if not the owner or the job
            occurred_at: default now (UTC)

        Returns:
            id of the new event

        Example:
            >>> EventLogRepository(db).append_event(
            ...     user_id=1,
            ...     event_type="budget_status_changed",
            ...     payload={"budget_id": 7, "from": "active", "to": "paused"},
            ... )
        """
        event = EventLog(
            user_id=user_id,
            budget_id=payload.get("budget_id"),
            actor_user_id=actor_user_id,
            event_type=event_type,
            payload_json=payload,
            occurred_at=occurred_at or datetime.now(timezone.utc),
        )
        self.db.add(event)
        self.db.flush()
        return event.id

    def list_events_since(
        self,
        user_id: int,
        after_id: int = 0,
        limit: int = 200,
        budget_id: Optional[int] = None,
        event_types: Optional[List[str]] = None,
    ) -> List[EventLog]:
        """Events with id > after_id (a reader's checkpoint), oldest first."""
        query = self.db.query(EventLog).filter(
            EventLog.user_id == user_id,
            EventLog.id > after_id,
        )
        if budget_id is not None:
            query = query.filter(EventLog.budget_id == budget_id)
        if event_types:
            query = query.filter(EventLog.event_type.in_(event_types))

        return query.order_by(EventLog.id).limit(limit).all()

    def count_events(self, user_id: int, event_types: Optional[List[str]] = None) -> int:
        query = self.db.query(EventLog).filter(EventLog.user_id == user_id)
        if event_types:
            query = query.filter(EventLog.event_type.in_(event_types))
        return query.count()
