from __future__ import annotations

import asyncio
from typing import Any

import pytest

from hirelane.core.coordinator import JOB_LIST, OptimisticCoordinator, stage_target
from hirelane.core.events import NOTIFICATIONS, STATE, EventBus
from hirelane.errors import NotFound, SimulatedNetworkFailure
from hirelane.types import Page, StageChange


class FakeSource:
    """Scripted data source: each mutation call pops a (delay, fail) step."""

    def __init__(self, job_ids: list[int], stages: dict[int, str] | None = None):
        self.job_ids = list(job_ids)
        self.stages = dict(stages or {})
        self.plan: list[tuple[float, bool]] = []
        self.calls: list[tuple[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _step(self) -> None:
        delay, fail = self.plan.pop(0) if self.plan else (0.0, False)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(delay)
        finally:
            self.in_flight -= 1
        if fail:
            raise SimulatedNetworkFailure("scripted failure")

    async def list_jobs(self, **params: Any) -> Page:
        return Page(data=[{"id": job_id} for job_id in self.job_ids], total=len(self.job_ids))

    async def get_candidate(self, candidate_id: int) -> dict[str, Any]:
        if candidate_id not in self.stages:
            raise NotFound("candidates", candidate_id)
        return {"id": candidate_id, "stage": self.stages[candidate_id]}

    async def reorder_jobs(self, job_ids: list[int]) -> list[dict[str, Any]]:
        self.calls.append(("reorder", list(job_ids)))
        await self._step()
        self.job_ids = list(job_ids)
        return [{"id": job_id} for job_id in job_ids]

    async def update_candidate_stage(self, candidate_id: int, stage: str) -> StageChange:
        self.calls.append(("stage", (candidate_id, stage)))
        await self._step()
        previous = self.stages[candidate_id]
        self.stages[candidate_id] = stage
        return StageChange(candidate_id=candidate_id, from_stage=previous, to_stage=stage)


async def _loaded(source: FakeSource) -> OptimisticCoordinator:
    coordinator = OptimisticCoordinator(source)
    await coordinator.load_jobs()
    return coordinator


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_failed_reorder_restores_exact_prior_order() -> None:
    source = FakeSource([1, 2, 3])
    source.plan = [(0.0, True)]
    coordinator = await _loaded(source)

    outcome = await coordinator.reorder_jobs([2, 1, 3])

    assert outcome.status == "rolled_back"
    assert coordinator.observed(JOB_LIST) == [1, 2, 3]
    assert not coordinator.is_pending(JOB_LIST)
    assert outcome.notification.kind == "failure"
    assert outcome.notification.message == "Failed to update job order. Reverting."


@pytest.mark.asyncio
async def test_reorder_is_visible_before_the_response_and_confirmed_after() -> None:
    source = FakeSource([1, 2, 3])
    source.plan = [(0.02, False)]
    coordinator = await _loaded(source)

    task = asyncio.create_task(coordinator.reorder_jobs([3, 1, 2]))
    await _settle()
    assert coordinator.observed(JOB_LIST) == [3, 1, 2]
    assert coordinator.confirmed(JOB_LIST) == [1, 2, 3]
    assert coordinator.is_pending(JOB_LIST)

    outcome = await task
    assert outcome.ok
    assert outcome.notification.message == "Job order updated!"
    assert coordinator.confirmed(JOB_LIST) == [3, 1, 2]
    assert not coordinator.is_pending(JOB_LIST)


@pytest.mark.asyncio
async def test_late_failure_of_superseded_reorder_is_discarded() -> None:
    source = FakeSource([1, 2, 3])
    source.plan = [(0.05, True), (0.0, False)]
    coordinator = await _loaded(source)

    slow = asyncio.create_task(coordinator.reorder_jobs([2, 1, 3]))
    await _settle()
    fast = await coordinator.reorder_jobs([3, 2, 1])
    stale = await slow

    assert fast.status == "confirmed"
    assert stale.status == "stale"
    assert stale.notification is None
    assert coordinator.observed(JOB_LIST) == [3, 2, 1]
    assert coordinator.confirmed(JOB_LIST) == [3, 2, 1]


@pytest.mark.asyncio
async def test_late_success_does_not_override_a_newer_confirmation() -> None:
    source = FakeSource([1, 2, 3])
    source.plan = [(0.05, False), (0.0, False)]
    coordinator = await _loaded(source)

    slow = asyncio.create_task(coordinator.reorder_jobs([2, 1, 3]))
    await _settle()
    await coordinator.reorder_jobs([3, 2, 1])
    assert (await slow).status == "stale"

    assert coordinator.observed(JOB_LIST) == [3, 2, 1]
    assert coordinator.confirmed(JOB_LIST) == [3, 2, 1]


@pytest.mark.asyncio
async def test_sends_for_one_target_go_out_in_issue_order() -> None:
    source = FakeSource([1, 2, 3])
    source.plan = [(0.05, False), (0.0, False)]
    coordinator = await _loaded(source)

    slow = asyncio.create_task(coordinator.reorder_jobs([2, 1, 3]))
    await _settle()
    fast = asyncio.create_task(coordinator.reorder_jobs([3, 2, 1]))
    await _settle()
    assert coordinator.observed(JOB_LIST) == [3, 2, 1]
    assert source.calls == [("reorder", [2, 1, 3])]

    await asyncio.gather(slow, fast)
    assert source.calls == [("reorder", [2, 1, 3]), ("reorder", [3, 2, 1])]
    assert source.max_in_flight == 1
    assert source.job_ids == [3, 2, 1]


@pytest.mark.asyncio
async def test_sends_for_different_targets_overlap() -> None:
    source = FakeSource([], {7: "applied", 8: "applied"})
    source.plan = [(0.02, False), (0.02, False)]
    coordinator = OptimisticCoordinator(source)

    first, second = await asyncio.gather(coordinator.move_candidate(7, "screen"), coordinator.move_candidate(8, "tech"))

    assert (first.status, second.status) == ("confirmed", "confirmed")
    assert source.max_in_flight == 2


@pytest.mark.asyncio
async def test_superseded_stage_success_still_reaches_listeners() -> None:
    source = FakeSource([], {7: "applied"})
    source.plan = [(0.05, False), (0.0, False)]
    coordinator = OptimisticCoordinator(source)
    changes: list[StageChange] = []
    coordinator.on_stage_confirmed(changes.append)

    first = asyncio.create_task(coordinator.move_candidate(7, "screen"))
    await _settle()
    second = await coordinator.move_candidate(7, "tech")

    assert (await first).status == "stale"
    assert second.status == "confirmed"
    assert changes == [
        StageChange(candidate_id=7, from_stage="applied", to_stage="screen"),
        StageChange(candidate_id=7, from_stage="screen", to_stage="tech"),
    ]
    assert coordinator.observed(stage_target(7)) == "tech"
    assert source.stages[7] == "tech"


@pytest.mark.asyncio
async def test_invalid_mutations_are_rejected_without_a_request() -> None:
    source = FakeSource([1, 2, 3], {7: "applied"})
    coordinator = await _loaded(source)

    assert (await coordinator.reorder_jobs([1, 2, 4])).status == "rejected"
    assert (await coordinator.reorder_jobs([1, 1, 2])).status == "rejected"
    assert (await coordinator.move_candidate(7, "interviewing")).status == "rejected"
    assert source.calls == []
    assert coordinator.observed(JOB_LIST) == [1, 2, 3]


@pytest.mark.asyncio
async def test_reorder_before_load_is_rejected() -> None:
    coordinator = OptimisticCoordinator(FakeSource([1, 2]))
    outcome = await coordinator.reorder_jobs([2, 1])
    assert outcome.status == "rejected"
    assert outcome.value is None


@pytest.mark.asyncio
async def test_no_op_mutations_are_unchanged() -> None:
    source = FakeSource([1, 2, 3], {7: "screen"})
    coordinator = await _loaded(source)

    assert (await coordinator.reorder_jobs([1, 2, 3])).status == "unchanged"
    assert (await coordinator.move_candidate(7, "screen")).status == "unchanged"
    assert source.calls == []


@pytest.mark.asyncio
async def test_unknown_candidate_is_rejected() -> None:
    coordinator = OptimisticCoordinator(FakeSource([]))
    outcome = await coordinator.move_candidate(404, "tech")
    assert outcome.status == "rejected"
    assert outcome.notification.message == "Candidate #404 could not be loaded."


@pytest.mark.asyncio
async def test_rollback_only_touches_its_own_target() -> None:
    source = FakeSource([1, 2, 3], {7: "applied", 8: "tech"})
    coordinator = await _loaded(source)
    await coordinator.move_candidate(8, "offer")

    source.plan = [(0.0, True)]
    outcome = await coordinator.move_candidate(7, "screen")

    assert outcome.status == "rolled_back"
    assert outcome.notification.message == "Failed to move candidate #7. Reverting."
    assert coordinator.observed(stage_target(7)) == "applied"
    assert coordinator.observed(stage_target(8)) == "offer"
    assert coordinator.observed(JOB_LIST) == [1, 2, 3]


@pytest.mark.asyncio
async def test_stage_listeners_run_only_on_confirmation() -> None:
    source = FakeSource([], {7: "applied"})
    coordinator = OptimisticCoordinator(source)
    changes: list[StageChange] = []
    coordinator.on_stage_confirmed(changes.append)

    source.plan = [(0.0, True), (0.0, False)]
    assert (await coordinator.move_candidate(7, "screen")).status == "rolled_back"
    assert changes == []

    outcome = await coordinator.move_candidate(7, "screen")
    assert outcome.notification.message == "Candidate #7 moved to screen."
    assert changes == [StageChange(candidate_id=7, from_stage="applied", to_stage="screen")]


@pytest.mark.asyncio
async def test_notifications_and_state_are_published() -> None:
    bus = EventBus()
    source = FakeSource([1, 2])
    source.plan = [(0.0, True)]
    coordinator = OptimisticCoordinator(source, bus=bus)
    await coordinator.load_jobs()

    notifications = bus.subscribe(NOTIFICATIONS)
    states = bus.subscribe(STATE)
    next_notification = asyncio.create_task(anext(notifications))
    next_state = asyncio.create_task(anext(states))
    await _settle()
    assert bus.subscriber_count(NOTIFICATIONS) == 1

    await coordinator.reorder_jobs([2, 1])

    assert await next_notification == {"kind": "failure", "message": "Failed to update job order. Reverting."}
    assert await next_state == {"target": ["jobs"], "value": [2, 1], "pending": True}
    assert await anext(states) == {"target": ["jobs"], "value": [1, 2], "pending": False}
    await notifications.aclose()
    await states.aclose()
