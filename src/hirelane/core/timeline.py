from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from hirelane.db.base import ensure_utc, utcnow
from hirelane.db.models import TimelineEvent
from hirelane.db.store import PersistentStore, StoreOperations
from hirelane.types import StageChange

if TYPE_CHECKING:
    from hirelane.core.coordinator import OptimisticCoordinator

logger = logging.getLogger(__name__)


def append_timeline_event(
    tx: StoreOperations,
    candidate_id: int,
    *,
    type: str,
    description: str,
    author: str | None = None,
    from_stage: str | None = None,
    to_stage: str | None = None,
    now: datetime | None = None,
) -> int:
    """Append one event, never earlier than the candidate's latest event."""
    created_at = ensure_utc(now or utcnow())
    latest = tx.query(
        "timeline",
        TimelineEvent.candidate_id == candidate_id,
        order_by=[TimelineEvent.created_at.desc(), TimelineEvent.id.desc()],
        limit=1,
    )
    if latest and ensure_utc(latest[0].created_at) > created_at:
        created_at = ensure_utc(latest[0].created_at)

    return tx.insert(
        "timeline",
        {
            "candidate_id": candidate_id,
            "type": type,
            "description": description,
            "author": author,
            "from_stage": from_stage,
            "to_stage": to_stage,
            "created_at": created_at,
        },
    )


class TimelineRecorder:
    """Writes stage-change audit rows for confirmed stage mutations only.

    Attach it to a coordinator; it is invoked after a stage change has been
    confirmed by the data source, never when the change is applied
    optimistically, so rolled-back changes leave no trace.
    """

    def __init__(
        self,
        store: PersistentStore,
        *,
        author: str = "HR Team",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.author = author
        self.clock = clock

    def attach(self, coordinator: OptimisticCoordinator) -> None:
        coordinator.on_stage_confirmed(self)

    async def __call__(self, change: StageChange) -> None:
        self.record_stage_change(change)

    def record_stage_change(self, change: StageChange) -> int:
        with self.store.transaction() as tx:
            tx.require("candidates", change.candidate_id)
            event_id = append_timeline_event(
                tx,
                change.candidate_id,
                type="stage-change",
                description=f"Stage changed from {change.from_stage} to {change.to_stage}",
                author=self.author,
                from_stage=change.from_stage,
                to_stage=change.to_stage,
                now=self.clock(),
            )
        logger.info(
            "Recorded stage change candidate_id=%s %s->%s event_id=%s",
            change.candidate_id,
            change.from_stage,
            change.to_stage,
            event_id,
        )
        return event_id
