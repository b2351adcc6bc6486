"""Async client for the Contentful Management API (entries, assets, AI actions)."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

BASE_URL = "https://api.contentful.com"
CONTENT_TYPE = "application/vnd.contentful.management.v1+json"
DEFAULT_LOCALE = "en-US"
TIMEOUT = 30  # seconds

AI_POLL_ATTEMPTS = 30
AI_POLL_INTERVAL = 2.0  # seconds


def make_link(entity_id: str, link_type: str = "Entry") -> dict:
    return {"sys": {"type": "Link", "linkType": link_type, "id": entity_id}}


def localize(value: Any, locale: str = DEFAULT_LOCALE) -> dict:
    return {locale: value}


class ContentfulClient:
    """Thin wrapper over the CMA REST endpoints used by the loaders.

    Use as an async context manager so the underlying connection pool is
    closed::

        async with ContentfulClient(token, space_id) as client:
            entry_id = await client.create_entry("page", fields)

    Every request raises :class:`httpx.HTTPStatusError` on a non-2xx
    response.  *transport* lets tests substitute :class:`httpx.MockTransport`.
    """

    def __init__(
        self,
        token: str,
        space_id: str,
        environment_id: str = "master",
        *,
        base_url: str = BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        poll_attempts: int = AI_POLL_ATTEMPTS,
        poll_interval: float = AI_POLL_INTERVAL,
    ) -> None:
        if not token:
            raise ValueError("A Contentful management token is required.")
        self.space_id = space_id
        self.environment_id = environment_id
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=TIMEOUT,
            transport=transport,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": CONTENT_TYPE,
            },
        )

    async def __aenter__(self) -> "ContentfulClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def _env_path(self) -> str:
        return f"/spaces/{self.space_id}/environments/{self.environment_id}"

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        response = await self._client.request(method, path, **kwargs)
        response.raise_for_status()
        return response.json() if response.content else {}

    # ── Entries ───────────────────────────────────────────────────────────────

    async def create_entry(
        self,
        content_type_id: str,
        fields: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        payload: Dict[str, Any] = {"fields": fields}
        if metadata:
            payload["metadata"] = metadata
        entry = await self._request(
            "POST",
            f"{self._env_path}/entries",
            json=payload,
            headers={"X-Contentful-Content-Type": content_type_id},
        )
        return entry["sys"]["id"]

    async def get_entry(self, entry_id: str) -> dict:
        return await self._request("GET", f"{self._env_path}/entries/{entry_id}")

    async def update_entry(self, entry: dict) -> dict:
        """PUT *entry* back, using its own ``sys.version`` for optimistic locking."""
        sys = entry["sys"]
        body = {"fields": entry.get("fields", {})}
        if entry.get("metadata"):
            body["metadata"] = entry["metadata"]
        return await self._request(
            "PUT",
            f"{self._env_path}/entries/{sys['id']}",
            json=body,
            headers={"X-Contentful-Version": str(sys["version"])},
        )

    async def publish_entry(self, entry_id: str) -> dict:
        entry = await self.get_entry(entry_id)
        return await self._request(
            "PUT",
            f"{self._env_path}/entries/{entry_id}/published",
            headers={"X-Contentful-Version": str(entry["sys"]["version"])},
        )

    async def list_entries(self, content_type_id: str, limit: int = 100) -> List[dict]:
        data = await self._request(
            "GET",
            f"{self._env_path}/entries",
            params={"content_type": content_type_id, "limit": limit},
        )
        return data.get("items", [])

    # ── Assets ────────────────────────────────────────────────────────────────

    async def create_asset(
        self,
        title: str,
        file_name: str,
        content_type: str,
        source_url: str,
        description: str = "",
    ) -> str:
        asset = await self._request(
            "POST",
            f"{self._env_path}/assets",
            json={
                "fields": {
                    "title": localize(title),
                    "description": localize(description),
                    "file": localize(
                        {"contentType": content_type, "fileName": file_name, "upload": source_url}
                    ),
                }
            },
        )
        return asset["sys"]["id"]

    async def find_asset_by_title(self, title: str) -> Optional[dict]:
        data = await self._request(
            "GET",
            f"{self._env_path}/assets",
            params={"fields.title": title, "limit": 1},
        )
        items = data.get("items", [])
        return items[0] if items else None

    async def get_asset(self, asset_id: str) -> dict:
        return await self._request("GET", f"{self._env_path}/assets/{asset_id}")

    async def process_asset(self, asset_id: str, locale: str = DEFAULT_LOCALE) -> None:
        asset = await self.get_asset(asset_id)
        await self._request(
            "PUT",
            f"{self._env_path}/assets/{asset_id}/files/{locale}/process",
            headers={"X-Contentful-Version": str(asset["sys"]["version"])},
        )

    async def publish_asset(self, asset: dict) -> dict:
        sys = asset["sys"]
        return await self._request(
            "PUT",
            f"{self._env_path}/assets/{sys['id']}/published",
            headers={"X-Contentful-Version": str(sys["version"])},
        )

    # ── AI actions ────────────────────────────────────────────────────────────

    async def list_ai_actions(self, limit: int = 10) -> List[dict]:
        data = await self._request(
            "GET", f"/spaces/{self.space_id}/ai/actions", params={"limit": limit}
        )
        return data.get("items", [])

    async def invoke_action(self, action_id: str, variables: Dict[str, str]) -> str:
        """Invoke an AI action and poll until it completes.

        Returns the generated text.

        Raises:
            RuntimeError: if no invocation id comes back, the invocation
                fails, or it is still running after ``poll_attempts`` polls.
        """
        action_path = f"{self._env_path}/ai/actions/{action_id}"
        invocation = await self._request(
            "POST",
            f"{action_path}/invoke",
            json={
                "outputFormat": "PlainText",
                "variables": [{"id": key, "value": value} for key, value in variables.items()],
            },
        )
        invocation_id = (invocation.get("sys") or {}).get("id")
        if not invocation_id:
            raise RuntimeError("No invocation ID returned")

        for _ in range(self.poll_attempts):
            await asyncio.sleep(self.poll_interval)
            result = await self._request("GET", f"{action_path}/invocations/{invocation_id}")
            status = str(
                result.get("status") or (result.get("sys") or {}).get("status") or ""
            ).lower()
            output = result.get("output") or (result.get("result") or {}).get("content")
            if status == "completed" and output:
                return output
            if status == "failed":
                raise RuntimeError(f"AI Action failed: {result.get('error') or 'unknown error'}")

        raise RuntimeError(
            f"AI Action timed out after {self.poll_attempts * self.poll_interval:.0f} seconds"
        )
