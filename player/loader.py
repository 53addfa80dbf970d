from __future__ import annotations

from typing import Protocol

import httpx
from pydantic import ValidationError

from player.api.models import ExplorationInitResponse
from player.errors import LoadFailure


class ExplorationLoader(Protocol):
    async def load(self, exploration_id: str, version: int | None = None) -> ExplorationInitResponse:  # pragma: no cover
        ...


def _server_error_message(resp: httpx.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return None


class HttpExplorationLoader:
    """Fetches the exploration graph and the learner's session from the server."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def load(self, exploration_id: str, version: int | None = None) -> ExplorationInitResponse:
        params = {"v": str(version)} if version else None
        try:
            resp = await self._client.get(f"/explorehandler/init/{exploration_id}", params=params)
        except httpx.HTTPError as e:
            raise LoadFailure() from e

        if resp.is_error:
            raise LoadFailure(_server_error_message(resp))

        try:
            return ExplorationInitResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise LoadFailure() from e
