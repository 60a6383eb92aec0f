from __future__ import annotations

import random
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from hirelane.api.app import create_app
from hirelane.api.faults import FaultInjector
from hirelane.config import Settings
from hirelane.db.seed import seed_store
from hirelane.db.store import PersistentStore


@pytest.fixture
def settings() -> Settings:
    return Settings(app_env="test", mutation_delay_ms=0, seed_random_seed=7, fault_random_seed=7)


@pytest.fixture
def store() -> Iterator[PersistentStore]:
    with PersistentStore.in_memory() as opened:
        yield opened


@pytest.fixture
def seeded_store(store: PersistentStore) -> PersistentStore:
    seed_store(store, rng=random.Random(42), job_count=25, candidate_count=40)
    return store


@pytest.fixture
def client(seeded_store: PersistentStore, settings: Settings) -> Iterator[TestClient]:
    app = create_app(seeded_store, settings=settings, faults=FaultInjector.disabled())
    with TestClient(app) as test_client:
        yield test_client
