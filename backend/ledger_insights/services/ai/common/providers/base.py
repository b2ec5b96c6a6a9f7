"""Abstract base for all AI providers."""

from __future__ import annotations

import abc
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class TextPart:
    """Instruction or data text sent to the model."""

    text: str


@dataclass(frozen=True)
class InlineDataPart:
    """Binary attachment (base64) sent alongside the instruction."""

    data: str
    mime_type: str


RequestPart = Union[TextPart, InlineDataPart]


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider."""

    raw_text: str
    model: str
    provider: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    thoughts_tokens: int = 0
    latency_ms: float = 0.0


class BaseProvider(abc.ABC):
    """Contract that every AI provider must implement."""

    name: str = "base"

    @abc.abstractmethod
    async def generate(
        self,
        parts: Sequence[RequestPart],
        *,
        model: str = "",
        response_mime_type: str = "application/json",
        thinking_budget: Optional[int] = None,
        temperature: float = 0.2,
        max_tokens: int = 8192,
        timeout_seconds: Optional[float] = None,
    ) -> ProviderResult:
        """Send *parts* and return a ``ProviderResult``.

        Transport and HTTP status failures propagate as ``httpx`` errors.
        An empty ``raw_text`` is returned as-is; callers decide what it means.
        """
