"""
Resource client for the remote posts/users/comments data source.

Each method issues exactly one HTTP call and returns the decoded JSON body
untouched; turning those payloads into models is the aggregation engine's
job.  Failures are normalised into the ``app.exceptions`` taxonomy:

- connect errors, timeouts, undecodable bodies and any other
  ``httpx.RequestError`` -> ``TransportError``
- 4xx/5xx responses -> ``RemoteError(status_code)``
- 404 on a single-resource GET -> ``None`` (the resource is absent)
"""
import logging
from typing import Any

import httpx

from app.config import settings
from app.exceptions import RemoteError, TransportError
from app.middleware import increment_upstream_calls

logger = logging.getLogger(__name__)


def build_http_client(
    base_url: str | None = None,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the shared ``httpx.AsyncClient`` used for every upstream call."""
    return httpx.AsyncClient(
        base_url=base_url or settings.UPSTREAM_BASE_URL,
        timeout=timeout if timeout is not None else settings.UPSTREAM_TIMEOUT_SECONDS,
        headers={"Accept": "application/json"},
        transport=transport,
    )


class ResourceClient:
    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_posts(self) -> list[dict]:
        return await self._get_collection("/posts")

    async def get_post(self, post_id: int) -> dict | None:
        return await self._get_single(f"/posts/{post_id}")

    async def get_user(self, user_id: int) -> dict | None:
        return await self._get_single(f"/users/{user_id}")

    async def list_comments(self, post_id: int) -> list[dict]:
        return await self._get_collection(f"/posts/{post_id}/comments")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def delete_post(self, post_id: int) -> None:
        """
        Issue ``DELETE /posts/{post_id}``.

        Returning normally only means the upstream accepted the call; the
        public data source simulates deletes without persisting them.
        """
        await self._request("DELETE", f"/posts/{post_id}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str) -> httpx.Response:
        increment_upstream_calls()
        try:
            response = await self._http.request(method, path)
        except httpx.RequestError as exc:
            logger.error("Upstream %s %s failed: %s", method, path, exc)
            raise TransportError(
                f"Upstream request failed: {exc.__class__.__name__}",
                context={"method": method, "path": path},
            ) from exc

        if response.is_error:
            if response.status_code != 404:
                logger.error("Upstream %s %s responded %d", method, path, response.status_code)
            raise RemoteError(
                response.status_code,
                f"Upstream {method} {path} responded {response.status_code}",
                context={"method": method, "path": path},
            )
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(
                response.status_code,
                "Upstream returned a body that is not valid JSON",
                context={"path": response.request.url.path},
            ) from exc

    async def _get_single(self, path: str) -> dict | None:
        try:
            response = await self._request("GET", path)
        except RemoteError as exc:
            if exc.status_code == 404:
                logger.warning("Upstream resource %s not found", path)
                return None
            raise
        body = self._decode(response)
        # JSONPlaceholder answers unknown ids on some routes with "{}".
        return body or None

    async def _get_collection(self, path: str) -> list[dict]:
        response = await self._request("GET", path)
        body = self._decode(response)
        if body is None:
            return []
        if not isinstance(body, list):
            raise RemoteError(
                response.status_code,
                f"Expected a JSON array from {path}",
                context={"path": path},
            )
        return body
