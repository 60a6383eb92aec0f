from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass

from hirelane.config import Settings
from hirelane.errors import SimulatedNetworkFailure

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FaultPolicy:
    delay_sec: float = 0.5
    failure_rate: float = 0.1

    def __post_init__(self) -> None:
        if self.delay_sec < 0:
            raise ValueError("delay_sec must not be negative")
        if self.failure_rate < 0 or self.failure_rate > 1:
            raise ValueError("failure_rate must be between 0 and 1")


class FaultInjector:
    """Latency and failure injection for mutating routes.

    Every mutating route awaits ``inject(route)`` before touching the store, so
    an injected failure never leaves a partial write behind.
    """

    def __init__(
        self,
        policies: dict[str, FaultPolicy] | None = None,
        *,
        default: FaultPolicy | None = None,
        rng: random.Random | None = None,
    ):
        self.policies = dict(policies or {})
        self.default = default or FaultPolicy()
        self.rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings: Settings, *, rng: random.Random | None = None) -> FaultInjector:
        delay = settings.mutation_delay_sec
        return cls(
            {
                "reorder_jobs": FaultPolicy(delay, settings.reorder_failure_rate),
                "update_candidate_stage": FaultPolicy(delay, settings.stage_failure_rate),
            },
            default=FaultPolicy(delay, settings.write_failure_rate),
            rng=rng or random.Random(settings.fault_random_seed),
        )

    @classmethod
    def disabled(cls) -> FaultInjector:
        return cls(default=FaultPolicy(delay_sec=0.0, failure_rate=0.0))

    def policy(self, route: str) -> FaultPolicy:
        return self.policies.get(route, self.default)

    def set_policy(self, route: str, policy: FaultPolicy) -> None:
        self.policies[route] = policy

    async def inject(self, route: str) -> None:
        policy = self.policy(route)
        if policy.delay_sec > 0:
            await asyncio.sleep(policy.delay_sec)
        if policy.failure_rate > 0 and self.rng.random() < policy.failure_rate:
            logger.info("Injected failure route=%s rate=%s", route, policy.failure_rate)
            raise SimulatedNetworkFailure(f"simulated network failure on {route}")
