from __future__ import annotations

import logging

import httpx
from fastapi import FastAPI

from hirelane.api.app import create_app
from hirelane.api.faults import FaultInjector
from hirelane.api.interceptor import InterceptingTransport
from hirelane.api.routes import router
from hirelane.config import Settings, get_settings
from hirelane.core.coordinator import OptimisticCoordinator
from hirelane.core.datasource import HttpDataSource
from hirelane.core.events import EventBus
from hirelane.core.timeline import TimelineRecorder
from hirelane.db.init import init_database
from hirelane.db.store import PersistentStore
from hirelane.types import SeedResult

logger = logging.getLogger(__name__)


class Runtime:
    """Wires the store, the intercepted API and the mutation coordinator.

    Nothing is created at import time: ``start()`` opens (and seeds) the store
    unless one is handed in, installs the intercepting transport on an httpx
    client and attaches the timeline recorder. ``close()`` tears it all down
    in reverse order.
    """

    def __init__(self) -> None:
        self.settings: Settings | None = None
        self.store: PersistentStore | None = None
        self.seed_result: SeedResult | None = None
        self.app: FastAPI | None = None
        self.client: httpx.AsyncClient | None = None
        self.bus: EventBus | None = None
        self.source: HttpDataSource | None = None
        self.coordinator: OptimisticCoordinator | None = None
        self.recorder: TimelineRecorder | None = None
        self._owns_store = False

    @property
    def started(self) -> bool:
        return self.client is not None

    async def start(
        self,
        settings: Settings | None = None,
        *,
        store: PersistentStore | None = None,
        faults: FaultInjector | None = None,
        passthrough: httpx.AsyncBaseTransport | None = None,
    ) -> Runtime:
        if self.started:
            return self

        settings = settings or get_settings()
        if store is None:
            store, self.seed_result = init_database(settings)
            self._owns_store = True
        elif not store.is_open:
            store.open()

        self.settings = settings
        self.store = store
        self.app = create_app(store, settings=settings, faults=faults)
        transport = InterceptingTransport(self.app, router.routes, passthrough=passthrough)
        self.client = httpx.AsyncClient(transport=transport, base_url=settings.api_base_url)

        self.bus = EventBus()
        self.source = HttpDataSource(self.client)
        self.coordinator = OptimisticCoordinator(self.source, bus=self.bus)
        self.recorder = TimelineRecorder(store, author=settings.timeline_author)
        self.recorder.attach(self.coordinator)
        logger.info("Runtime started base_url=%s durable=%s", settings.api_base_url, store.is_durable)
        return self

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
        if self.store is not None and self._owns_store:
            self.store.close()
        self.store = None
        self._owns_store = False
        self.coordinator = None
        self.source = None
        self.recorder = None
        logger.info("Runtime closed")

    async def __aenter__(self) -> Runtime:
        return await self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
