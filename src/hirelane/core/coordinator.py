"""Optimistic mutations with rollback and stale-response suppression.

Each target (the job list, one candidate's stage) is owned by the coordinator
as a ``TargetState``: the last confirmed value, the value observers currently
see, and the sequence number of the most recently issued mutation. A mutation
is applied to the observed value before the data source answers; the answer is
only shown if it belongs to the latest mutation for that target. Sends for one
target go out one at a time in issue order, so the remote side applies them in
the order they were made. A failed latest mutation restores the target's last
confirmed value and nothing else. Every successful response reaches the confirm
listeners, superseded or not, since the remote side has persisted it.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any, Literal

import httpx

from hirelane.core.datasource import DataSource
from hirelane.core.events import NOTIFICATIONS, STATE, EventBus
from hirelane.errors import HirelaneError
from hirelane.types import CANDIDATE_STAGES, Notification, Page, StageChange

logger = logging.getLogger(__name__)

Target = tuple[Hashable, ...]
OutcomeStatus = Literal["confirmed", "rolled_back", "stale", "rejected", "unchanged"]
StageListener = Callable[[StageChange], Awaitable[None] | None]

JOB_LIST: Target = ("jobs",)

# Failures the coordinator recovers from locally instead of propagating.
RECOVERABLE_ERRORS = (HirelaneError, httpx.HTTPError)


def stage_target(candidate_id: int) -> Target:
    return ("stage", candidate_id)


def _copy(value: Any) -> Any:
    return list(value) if isinstance(value, list) else value


@dataclass(slots=True)
class PendingMutation:
    seq: int
    value: Any


@dataclass(slots=True)
class TargetState:
    confirmed: Any
    observed: Any
    seq: int = 0
    confirmed_seq: int = 0
    pending: PendingMutation | None = None


@dataclass(slots=True)
class MutationOutcome:
    target: Target
    seq: int
    status: OutcomeStatus
    value: Any
    notification: Notification | None = None

    @property
    def ok(self) -> bool:
        return self.status in {"confirmed", "unchanged"}


class OptimisticCoordinator:
    def __init__(self, source: DataSource, *, bus: EventBus | None = None):
        self.source = source
        self.bus = bus or EventBus()
        self._targets: dict[Target, TargetState] = {}
        self._stage_listeners: list[StageListener] = []
        self._send_locks: dict[Target, asyncio.Lock] = {}

    def on_stage_confirmed(self, listener: StageListener) -> None:
        self._stage_listeners.append(listener)

    def observed(self, target: Target) -> Any:
        state = self._targets.get(target)
        return _copy(state.observed) if state else None

    def confirmed(self, target: Target) -> Any:
        state = self._targets.get(target)
        return _copy(state.confirmed) if state else None

    def is_pending(self, target: Target) -> bool:
        state = self._targets.get(target)
        return bool(state and state.pending)

    async def track(self, target: Target, value: Any) -> None:
        """Record ``value`` as confirmed state for ``target``.

        While a mutation on the target is in flight the observed value keeps
        showing the optimistic one.
        """
        state = self._targets.get(target)
        if state is None:
            state = self._targets[target] = TargetState(confirmed=_copy(value), observed=_copy(value))
        else:
            state.confirmed = _copy(value)
            if state.pending is None:
                state.observed = _copy(value)
        await self._publish_state(target, state)

    async def load_jobs(self, **params: Any) -> Page:
        page = await self.source.list_jobs(**params)
        await self.track(JOB_LIST, [job["id"] for job in page.data])
        return page

    async def reorder_jobs(self, new_order: list[int]) -> MutationOutcome:
        current = self.observed(JOB_LIST)
        if current is None:
            return await self._rejected(JOB_LIST, "Job list is not loaded.")
        if len(set(new_order)) != len(new_order) or sorted(new_order) != sorted(current):
            return await self._rejected(JOB_LIST, "New job order must be a permutation of the current list.")
        if list(new_order) == current:
            return MutationOutcome(JOB_LIST, self._targets[JOB_LIST].seq, "unchanged", current)

        ids = list(new_order)
        return await self._mutate(
            JOB_LIST,
            ids,
            send=lambda: self.source.reorder_jobs(ids),
            success_message="Job order updated!",
            failure_message="Failed to update job order. Reverting.",
        )

    async def move_candidate(self, candidate_id: int, stage: str) -> MutationOutcome:
        target = stage_target(candidate_id)
        if stage not in CANDIDATE_STAGES:
            return await self._rejected(target, f"Unknown stage '{stage}'.")

        if target not in self._targets:
            try:
                candidate = await self.source.get_candidate(candidate_id)
            except RECOVERABLE_ERRORS as exc:
                logger.warning("Cannot load candidate_id=%s: %s", candidate_id, exc)
                return await self._rejected(target, f"Candidate #{candidate_id} could not be loaded.")
            await self.track(target, candidate["stage"])

        state = self._targets[target]
        if state.observed == stage and state.pending is None:
            return MutationOutcome(target, state.seq, "unchanged", stage)

        return await self._mutate(
            target,
            stage,
            send=lambda: self.source.update_candidate_stage(candidate_id, stage),
            success_message=f"Candidate #{candidate_id} moved to {stage}.",
            failure_message=f"Failed to move candidate #{candidate_id}. Reverting.",
            on_confirm=self._stage_confirmed,
        )

    async def _mutate(
        self,
        target: Target,
        value: Any,
        *,
        send: Callable[[], Awaitable[Any]],
        success_message: str,
        failure_message: str,
        on_confirm: Callable[[Any], Awaitable[None]] | None = None,
    ) -> MutationOutcome:
        state = self._targets[target]
        state.seq += 1
        seq = state.seq
        state.pending = PendingMutation(seq=seq, value=_copy(value))
        state.observed = _copy(value)
        await self._publish_state(target, state)

        try:
            async with self._send_locks.setdefault(target, asyncio.Lock()):
                result = await send()
        except RECOVERABLE_ERRORS as exc:
            logger.info("Mutation failed target=%s seq=%s: %s", target, seq, exc)
            return await self._resolve_failure(target, seq, failure_message)
        return await self._resolve_success(target, seq, value, result, success_message, on_confirm)

    async def _resolve_success(
        self,
        target: Target,
        seq: int,
        value: Any,
        result: Any,
        message: str,
        on_confirm: Callable[[Any], Awaitable[None]] | None,
    ) -> MutationOutcome:
        state = self._targets[target]
        if seq > state.confirmed_seq:
            state.confirmed = _copy(value)
            state.confirmed_seq = seq

        if on_confirm is not None:
            await on_confirm(result)

        if seq != state.seq:
            logger.info("Discarding stale confirmation target=%s seq=%s latest=%s", target, seq, state.seq)
            return MutationOutcome(target, seq, "stale", _copy(state.observed))

        state.pending = None
        notification = Notification(kind="success", message=message)
        await self._notify(notification)
        return MutationOutcome(target, seq, "confirmed", _copy(state.observed), notification)

    async def _resolve_failure(self, target: Target, seq: int, message: str) -> MutationOutcome:
        state = self._targets[target]
        if seq != state.seq:
            logger.info("Discarding stale rejection target=%s seq=%s latest=%s", target, seq, state.seq)
            return MutationOutcome(target, seq, "stale", _copy(state.observed))

        state.observed = _copy(state.confirmed)
        state.pending = None
        logger.info("Rolled back target=%s seq=%s", target, seq)
        await self._publish_state(target, state)
        notification = Notification(kind="failure", message=message)
        await self._notify(notification)
        return MutationOutcome(target, seq, "rolled_back", _copy(state.observed), notification)

    async def _rejected(self, target: Target, message: str) -> MutationOutcome:
        state = self._targets.get(target)
        notification = Notification(kind="failure", message=message)
        await self._notify(notification)
        return MutationOutcome(
            target,
            state.seq if state else 0,
            "rejected",
            _copy(state.observed) if state else None,
            notification,
        )

    async def _stage_confirmed(self, change: StageChange) -> None:
        for listener in self._stage_listeners:
            try:
                result = listener(change)
                if inspect.isawaitable(result):
                    await result
            except HirelaneError:
                logger.exception("Stage listener failed candidate_id=%s", change.candidate_id)

    async def _publish_state(self, target: Target, state: TargetState) -> None:
        await self.bus.publish(
            STATE,
            {"target": list(target), "value": _copy(state.observed), "pending": state.pending is not None},
        )

    async def _notify(self, notification: Notification) -> None:
        await self.bus.publish(NOTIFICATIONS, notification.model_dump())
