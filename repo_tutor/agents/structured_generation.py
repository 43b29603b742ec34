"""
Structured generation: coerce free-text model output into schema-valid data.

Each call is a strictly sequential attempt loop around one LlmClient:
- transport failures are classified (cancelled / retriable / terminal)
- successful output goes through loose JSON extraction, then schema validation
- extraction and validation errors are fed back to the model as a repair turn
- at most `max_attempts` transport calls, no sleeps or parallel attempts
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, Literal, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

from repo_tutor.config import settings
from repo_tutor.services.llm_types import (
    ErrorCode,
    LlmClient,
    LlmMessage,
    TransportRequest,
)
from repo_tutor.utils.cancellation import CancellationToken
from repo_tutor.utils.json_parser import parse_json_loosely

logger = logging.getLogger(__name__)

FIRST_REPAIR_INSTRUCTION = "Your previous output was invalid. Fix it and output JSON only. Error: {error}"
FOLLOWUP_REPAIR_INSTRUCTION = "Fix the JSON only. Error: {error}"


# ============================================
# Error Classification
# ============================================


class GenerationCancelled(Exception):
    """Raised by orchestrators when the caller cancelled a generation."""


class Disposition(StrEnum):
    CANCELLED = "cancelled"
    RETRY = "retry"
    TERMINAL = "terminal"


TRANSPORT_DISPOSITIONS: dict[ErrorCode, Disposition] = {
    ErrorCode.CANCELLED: Disposition.CANCELLED,
    ErrorCode.TIMEOUT: Disposition.RETRY,
    ErrorCode.UPSTREAM_RATE_LIMIT: Disposition.RETRY,
    ErrorCode.UPSTREAM_ERROR: Disposition.RETRY,
    ErrorCode.INTERNAL_ERROR: Disposition.RETRY,
    ErrorCode.NETWORK_ERROR: Disposition.RETRY,
    ErrorCode.INVALID_RESPONSE: Disposition.RETRY,
    ErrorCode.METHOD_NOT_ALLOWED: Disposition.TERMINAL,
    ErrorCode.BAD_REQUEST: Disposition.TERMINAL,
    ErrorCode.CONFIG_MISSING: Disposition.TERMINAL,
    ErrorCode.UPSTREAM_UNAUTHORIZED: Disposition.TERMINAL,
}


def classify_transport_error(code: ErrorCode) -> Disposition:
    """Every code maps to exactly one disposition; unlisted codes are terminal."""
    return TRANSPORT_DISPOSITIONS.get(code, Disposition.TERMINAL)


# ============================================
# Request / Result
# ============================================


@dataclass(frozen=True)
class GenerationRequest:
    """
    Inputs for one structured generation call.

    `schema` is anything pydantic can validate against: a model class, a
    TypeAdapter, or an annotated type such as `list[ChapterPlan]`.
    """

    schema: Any
    system: str | None = None
    prompt: str | None = None
    messages: tuple[LlmMessage, ...] | None = None
    response_format: str | None = "application/json"
    response_json_schema: dict[str, Any] | None = None
    max_attempts: int = field(default_factory=lambda: settings.llm_max_attempts)
    timeout_ms: int | None = None
    cancellation: CancellationToken | None = None

    def __post_init__(self) -> None:
        if self.prompt is None and not self.messages:
            raise ValueError("GenerationRequest needs either prompt or messages")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


T = TypeVar("T")


@dataclass(frozen=True)
class StructuredSuccess(Generic[T]):
    data: T
    attempts: int
    ok: Literal[True] = True


@dataclass(frozen=True)
class StructuredFailure:
    code: ErrorCode
    reason: str
    last_raw_output: str | None = None
    attempts: int = 0
    ok: Literal[False] = False

    @property
    def cancelled(self) -> bool:
        return self.code == ErrorCode.CANCELLED


StructuredResult = Union[StructuredSuccess[T], StructuredFailure]


# ============================================
# Helpers
# ============================================


def as_type_adapter(schema: Any) -> TypeAdapter:
    return schema if isinstance(schema, TypeAdapter) else TypeAdapter(schema)


def format_validation_error(error: ValidationError) -> str:
    """'objectives.0: String should have at least 1 character; root: ...'"""
    parts = []
    for issue in error.errors():
        path = ".".join(str(part) for part in issue["loc"]) or "root"
        parts.append(f"{path}: {issue['msg']}")
    return "; ".join(parts)


def base_messages(request: GenerationRequest) -> tuple[LlmMessage, ...]:
    if request.messages:
        return tuple(request.messages)
    messages: tuple[LlmMessage, ...] = ()
    if request.system:
        messages += (LlmMessage("system", request.system),)
    return messages + (LlmMessage("user", request.prompt or ""),)


def build_retry_messages(
    base: tuple[LlmMessage, ...],
    history: tuple[LlmMessage, ...],
    last_output: str,
    error: str,
) -> tuple[LlmMessage, ...]:
    """Return a new history with the failed output and a corrective turn appended."""
    if not history:
        return base + (
            LlmMessage("assistant", last_output),
            LlmMessage("user", FIRST_REPAIR_INSTRUCTION.format(error=error)),
        )
    return history + (
        LlmMessage("assistant", last_output),
        LlmMessage("user", FOLLOWUP_REPAIR_INSTRUCTION.format(error=error)),
    )


def _transport_request(
    request: GenerationRequest,
    history: tuple[LlmMessage, ...],
    json_schema: dict[str, Any] | None,
) -> TransportRequest:
    common = {
        "response_format": request.response_format,
        "response_json_schema": json_schema,
        "timeout_ms": request.timeout_ms,
    }
    if history:
        return TransportRequest(messages=history, **common)
    return TransportRequest(system=request.system, prompt=request.prompt, messages=request.messages, **common)


# ============================================
# Engine
# ============================================


async def generate_structured(request: GenerationRequest, client: LlmClient) -> StructuredResult[T]:
    """
    Run the attempt loop and return a tagged result.

    Returns:
        StructuredSuccess with validated data, or StructuredFailure with the
        error code, a reason, and the last raw output for diagnostics.
        Cancellation is returned as a failure with code CANCELLED and is never
        retried.
    """
    adapter = as_type_adapter(request.schema)
    json_schema = request.response_json_schema
    if json_schema is None and request.response_format == "application/json":
        json_schema = adapter.json_schema(by_alias=True)

    base = base_messages(request)
    history: tuple[LlmMessage, ...] = ()
    last_output: str | None = None
    last_code = ErrorCode.INTERNAL_ERROR
    last_reason = "Unknown error"

    for attempt in range(1, request.max_attempts + 1):
        logger.debug(f"   Attempt {attempt}/{request.max_attempts} (history: {len(history)} messages)")
        has_more = attempt < request.max_attempts

        response = await client.generate(_transport_request(request, history, json_schema), request.cancellation)

        if not response.ok:
            disposition = classify_transport_error(response.code)
            if disposition is Disposition.CANCELLED:
                logger.info(f"🛑 Generation cancelled on attempt {attempt}")
                return StructuredFailure(ErrorCode.CANCELLED, response.message, last_output, attempt)

            last_code, last_reason = response.code, response.message
            if disposition is Disposition.RETRY and has_more:
                logger.warning(f"⚠️  Attempt {attempt} failed ({response.code}), retrying: {response.message}")
                continue

            logger.error(f"❌ Generation failed on attempt {attempt} ({response.code}): {response.message}")
            return StructuredFailure(response.code, response.message, last_output, attempt)

        last_output = response.output_text
        parsed = parse_json_loosely(last_output)
        if not parsed.ok:
            last_code, last_reason = ErrorCode.INVALID_JSON, parsed.error
            if has_more:
                logger.warning(f"⚠️  Attempt {attempt} returned unparsable output, asking for a repair")
                history = build_retry_messages(base, history, last_output, parsed.error)
                continue
            logger.error(f"❌ No parsable JSON after {attempt} attempts")
            return StructuredFailure(ErrorCode.INVALID_JSON, parsed.error, last_output, attempt)

        try:
            data = adapter.validate_python(parsed.value, strict=True)
        except ValidationError as e:
            reason = format_validation_error(e)
            last_code, last_reason = ErrorCode.SCHEMA_VALIDATION, reason
            if has_more:
                logger.warning(f"⚠️  Attempt {attempt} failed schema validation, asking for a repair: {reason}")
                history = build_retry_messages(base, history, last_output, reason)
                continue
            logger.error(f"❌ Output still invalid after {attempt} attempts: {reason}")
            return StructuredFailure(ErrorCode.SCHEMA_VALIDATION, reason, last_output, attempt)

        if attempt > 1:
            logger.info(f"✅ Structured output valid on attempt {attempt}")
        return StructuredSuccess(data, attempt)

    # Should never reach here, but safety net
    return StructuredFailure(last_code, last_reason, last_output, request.max_attempts)
