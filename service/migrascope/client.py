"""MigrationClient: async Python client for the migration service API.

Thin HTTP wrappers around the ``/migration`` endpoints polled by the
dashboard monitors.  Non-success responses raise ``MigrationClientError``;
transport problems surface as ``httpx.RequestError``.

Usage::

    from migrascope.client import MigrationClient

    async with MigrationClient("http://localhost:8080") as client:
        health = await client.health()
        jobs = await client.jobs()
        saved = await client.update_config({"doTable": True})
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx


class MigrationClientError(RuntimeError):
    """Raised when the API returns a non-success status."""

    def __init__(self, status_code: int, detail: str, message: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        # Structured ``message`` field of a JSON error body, if the server sent one
        self.message = message
        super().__init__(f"HTTP {status_code}: {message or detail}")


class MigrationClient:
    """Asynchronous HTTP client for the migration service."""

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        timeout: Optional[float] = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self):
        await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    # -- helpers --

    def _check(self, resp: httpx.Response) -> httpx.Response:
        if not resp.is_success:
            detail = resp.text[:500]
            message = None
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("message"):
                message = str(body["message"])
            raise MigrationClientError(resp.status_code, detail, message)
        return resp

    # -- Monitoring --

    async def health(self) -> Dict[str, Any]:
        """GET /migration/health: source and target database connectivity."""
        return self._check(await self._http.get("/migration/health")).json()

    async def status(self) -> Dict[str, Any]:
        """GET /migration/status: extraction and parse counters."""
        return self._check(await self._http.get("/migration/status")).json()

    async def jobs(self) -> List[Dict[str, Any]]:
        """GET /migration/jobs: job list; a map keyed by job id is flattened to its values."""
        body = self._check(await self._http.get("/migration/jobs")).json()
        if isinstance(body, dict):
            return list(body.values())
        return body or []

    async def logs(self, lines: Optional[int] = None) -> str:
        """GET /migration/logs: raw tail of the migration log."""
        params = {"lines": lines} if lines else None
        return self._check(await self._http.get("/migration/logs", params=params)).text

    async def target_stats(self) -> Dict[str, Any]:
        """GET /migration/target-stats: target database counters and fetch timestamp."""
        return self._check(await self._http.get("/migration/target-stats")).json()

    # -- Actions --

    async def start_job(self, job_type: str) -> Dict[str, Any]:
        """POST /migration/{jobType}: queue a migration job."""
        return self._check(await self._http.post(f"/migration/{job_type}")).json()

    async def reset(self) -> Dict[str, Any]:
        """POST /migration/reset: cancel jobs and clear extracted data."""
        return self._check(await self._http.post("/migration/reset")).json()

    # -- Configuration --

    async def get_config(self) -> Dict[str, Any]:
        """GET /migration/config: the server's full configuration."""
        return self._check(await self._http.get("/migration/config")).json()

    async def update_config(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """PUT /migration/config: replace configuration. Returns the response body with ``config``."""
        return self._check(await self._http.put("/migration/config", json=payload)).json()
