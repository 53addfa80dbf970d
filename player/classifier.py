from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from player.api.models import ParamSpec, RuleSpec, StateSpec
from player.errors import ClassificationTransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClassificationRequest:
    """Everything the classifier needs to judge one answer."""

    exploration_id: str
    exploration_version: int | None
    param_specs: dict[str, ParamSpec]
    params: dict[str, str]
    old_state: StateSpec
    handler: str
    answer: Any

    def payload(self) -> dict[str, Any]:
        return {
            "exp_param_specs": {name: spec.model_dump() for name, spec in self.param_specs.items()},
            "old_state": self.old_state.model_dump(),
            "handler": self.handler,
            "params": self.params,
            "answer": self.answer,
            "version": self.exploration_version,
        }


class AnswerClassifier(Protocol):
    async def classify(self, request: ClassificationRequest) -> RuleSpec:  # pragma: no cover
        ...


class HttpAnswerClassifier:
    """Classifies answers on the exploration server."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def classify(self, request: ClassificationRequest) -> RuleSpec:
        url = f"/explorehandler/classify/{request.exploration_id}"
        try:
            resp = await self._client.post(url, json=request.payload())
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ClassificationTransportError(f"Could not classify answer: {e}") from e

        try:
            rule = RuleSpec.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise ClassificationTransportError("Malformed classification response") from e

        logger.debug("Answer in state %s classified with dest=%s", request.old_state.name, rule.dest)
        return rule
