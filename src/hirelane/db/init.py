from __future__ import annotations

import random

from hirelane.config import Settings, get_settings
from hirelane.db.seed import seed_store
from hirelane.db.store import PersistentStore, open_store
from hirelane.types import SeedResult


def init_database(settings: Settings | None = None) -> tuple[PersistentStore, SeedResult]:
    """Open the store (durable, else in-memory) and seed it if it is empty."""
    settings = settings or get_settings()
    store = open_store(settings)
    try:
        result = seed_store(
            store,
            rng=random.Random(settings.seed_random_seed),
            job_count=settings.seed_job_count,
            candidate_count=settings.seed_candidate_count,
            assessment_count=settings.seed_assessment_count,
        )
    except Exception:
        store.close()
        raise
    return store, result
