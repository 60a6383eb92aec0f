from __future__ import annotations

from fastapi import Request

from hirelane.api.faults import FaultInjector
from hirelane.db.store import PersistentStore


def get_store(request: Request) -> PersistentStore:
    return request.app.state.store


def get_faults(request: Request) -> FaultInjector:
    return request.app.state.faults
