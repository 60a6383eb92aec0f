from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from hirelane.errors import NotFound, SimulatedNetworkFailure, ValidationError
from hirelane.types import Page, StageChange

logger = logging.getLogger(__name__)


class DataSource(Protocol):
    """What the mutation coordinator needs from the remote side."""

    async def list_jobs(
        self,
        *,
        page: int = 1,
        page_size: int = 10,
        search: str = "",
        status: str | None = None,
    ) -> Page: ...

    async def get_candidate(self, candidate_id: int) -> dict[str, Any]: ...

    async def reorder_jobs(self, job_ids: list[int]) -> list[dict[str, Any]]: ...

    async def update_candidate_stage(self, candidate_id: int, stage: str) -> StageChange: ...


def _detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except ValueError:
        detail = None
    return str(detail or response.reason_phrase)


class HttpDataSource:
    """DataSource speaking the declared JSON routes through an httpx client."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self.client.request(method, url, **kwargs)
        if response.is_error:
            logger.debug("Request failed %s %s status=%s", method, url, response.status_code)
        if response.status_code == 503:
            raise SimulatedNetworkFailure(_detail(response))
        if response.status_code == 404:
            raise NotFound("resource", url)
        if response.status_code in {400, 422}:
            raise ValidationError(_detail(response))
        response.raise_for_status()
        return response.json()

    async def list_jobs(
        self,
        *,
        page: int = 1,
        page_size: int = 10,
        search: str = "",
        status: str | None = None,
    ) -> Page:
        params: dict[str, Any] = {"page": page, "pageSize": page_size, "search": search}
        if status:
            params["status"] = status
        payload = await self._request("GET", "/jobs", params=params)
        return Page(data=payload["data"], total=payload["total"])

    async def list_candidates(
        self,
        *,
        page: int = 1,
        page_size: int = 10,
        search: str = "",
        stage: str | None = None,
        job_id: int | None = None,
    ) -> Page:
        params: dict[str, Any] = {"page": page, "pageSize": page_size, "search": search}
        if stage:
            params["stage"] = stage
        if job_id is not None:
            params["jobId"] = job_id
        payload = await self._request("GET", "/candidates", params=params)
        return Page(data=payload["data"], total=payload["total"])

    async def list_assessments(self) -> list[dict[str, Any]]:
        payload = await self._request("GET", "/assessments")
        return payload["data"]

    async def get_candidate(self, candidate_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/candidates/{candidate_id}")

    async def get_timeline(self, candidate_id: int) -> list[dict[str, Any]]:
        payload = await self._request("GET", f"/candidates/{candidate_id}/timeline")
        return payload["data"]

    async def reorder_jobs(self, job_ids: list[int]) -> list[dict[str, Any]]:
        payload = await self._request("PUT", "/jobs/reorder", json={"ids": job_ids})
        return payload["data"]

    async def update_candidate_stage(self, candidate_id: int, stage: str) -> StageChange:
        payload = await self._request("PATCH", f"/candidates/{candidate_id}", json={"stage": stage})
        return StageChange(
            candidate_id=candidate_id,
            from_stage=payload["previousStage"],
            to_stage=payload["data"]["stage"],
        )
