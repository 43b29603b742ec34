"""
Types shared between the LLM transport and the structured generation engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Literal, Protocol

from repo_tutor.utils.cancellation import CancellationToken


class ErrorCode(StrEnum):
    # Transport
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    BAD_REQUEST = "BAD_REQUEST"
    CONFIG_MISSING = "CONFIG_MISSING"
    UPSTREAM_UNAUTHORIZED = "UPSTREAM_UNAUTHORIZED"
    UPSTREAM_RATE_LIMIT = "UPSTREAM_RATE_LIMIT"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    TIMEOUT = "TIMEOUT"
    CANCELLED = "CANCELLED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    # Output handling
    INVALID_JSON = "INVALID_JSON"
    SCHEMA_VALIDATION = "SCHEMA_VALIDATION"
    INCOMPLETE_GRADING = "INCOMPLETE_GRADING"


TRANSPORT_ERROR_CODES = frozenset(
    {
        ErrorCode.METHOD_NOT_ALLOWED,
        ErrorCode.BAD_REQUEST,
        ErrorCode.CONFIG_MISSING,
        ErrorCode.UPSTREAM_UNAUTHORIZED,
        ErrorCode.UPSTREAM_RATE_LIMIT,
        ErrorCode.UPSTREAM_ERROR,
        ErrorCode.TIMEOUT,
        ErrorCode.CANCELLED,
        ErrorCode.INTERNAL_ERROR,
        ErrorCode.NETWORK_ERROR,
        ErrorCode.INVALID_RESPONSE,
    }
)


Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class LlmMessage:
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class TransportRequest:
    """One generation call: either system/prompt or a full message history."""

    system: str | None = None
    prompt: str | None = None
    messages: tuple[LlmMessage, ...] | None = None
    response_format: str | None = "application/json"
    response_json_schema: dict[str, Any] | None = None
    timeout_ms: int | None = None
    model: str | None = None
    temperature: float | None = None
    max_output_tokens: int | None = None


@dataclass(frozen=True)
class TransportSuccess:
    output_text: str
    model: str
    finish_reason: str | None = None
    request_id: str | None = None
    ok: Literal[True] = True


@dataclass(frozen=True)
class TransportFailure:
    code: ErrorCode
    message: str
    status: int | None = None
    ok: Literal[False] = False


TransportResponse = TransportSuccess | TransportFailure


class LlmClient(Protocol):
    async def generate(
        self,
        request: TransportRequest,
        cancellation: CancellationToken | None = None,
    ) -> TransportResponse: ...
