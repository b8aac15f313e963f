"""Shared httpx plumbing for plugins that talk to HTTP APIs."""

from typing import Any

import httpx

from kopsai.core.plugin import Plugin


class HTTPPlugin(Plugin):
    """Plugin backed by a single HTTP API.

    Subclasses implement :meth:`base_url` and, when the API needs them,
    :meth:`_auth` and :meth:`_headers`.
    """

    def base_url(self) -> str | None:
        """Base URL of the API, or None if not configured."""
        return None

    def _auth(self) -> httpx.Auth | tuple[str, str] | None:
        return None

    def _headers(self) -> dict[str, str]:
        return {}

    def _client(self, timeout: float | None = None) -> httpx.Client:
        """Create an httpx client with configured defaults."""
        base_url = (self.base_url() or "").rstrip("/")
        return httpx.Client(
            base_url=base_url,
            headers=self._headers(),
            auth=self._auth(),
            timeout=timeout or self.config.http_timeout,
        )

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        with self._client() as client:
            resp = client.get(path, params=params)
            resp.raise_for_status()
            return resp.json()

    def _get_text(self, path: str) -> str:
        with self._client() as client:
            resp = client.get(path)
            resp.raise_for_status()
            return resp.text
