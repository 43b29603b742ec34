import logging
import time
from typing import Any

import httpx

from repo_tutor.config import settings
from repo_tutor.services.llm_types import (
    ErrorCode,
    LlmMessage,
    TransportFailure,
    TransportRequest,
    TransportResponse,
    TransportSuccess,
)
from repo_tutor.utils.cancellation import (
    CancellationToken,
    OperationCancelled,
    OperationTimedOut,
    race_with_deadline,
)

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 60_000
MAX_SYSTEM_CHARS = 20_000
MIN_TIMEOUT_MS = 1_000
MAX_TIMEOUT_MS = 60_000
VALID_ROLES = {"system", "user", "assistant"}

# Upstream HTTP status -> error code; anything unlisted is UPSTREAM_ERROR
UPSTREAM_STATUS_CODES = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.UPSTREAM_UNAUTHORIZED,
    403: ErrorCode.UPSTREAM_UNAUTHORIZED,
    405: ErrorCode.METHOD_NOT_ALLOWED,
    422: ErrorCode.BAD_REQUEST,
    429: ErrorCode.UPSTREAM_RATE_LIMIT,
}

# Lazy singleton instance
_llm_client_instance = None


def get_llm_client() -> "ChatCompletionsClient":
    """
    Get or create singleton ChatCompletionsClient instance (lazy initialization).

    Returns:
        ChatCompletionsClient: Singleton instance
    """
    global _llm_client_instance

    if _llm_client_instance is None:
        logger.info("🤖 Initializing ChatCompletionsClient (first use)...")
        logger.info(f"   Model: {settings.llm_model}")
        _llm_client_instance = ChatCompletionsClient()

    return _llm_client_instance


def map_upstream_status(status_code: int) -> ErrorCode:
    return UPSTREAM_STATUS_CODES.get(status_code, ErrorCode.UPSTREAM_ERROR)


def clamp_timeout_ms(timeout_ms: int | None, default_ms: int) -> int:
    value = timeout_ms if timeout_ms is not None else default_ms
    return max(MIN_TIMEOUT_MS, min(MAX_TIMEOUT_MS, value))


def build_messages(request: TransportRequest) -> list[LlmMessage] | TransportFailure:
    """
    Resolve the request into a message list and enforce size limits.

    Returns:
        Messages, or a BAD_REQUEST failure
    """
    if request.messages:
        messages = list(request.messages)
    elif request.prompt is not None:
        messages = []
        if request.system:
            messages.append(LlmMessage("system", request.system))
        messages.append(LlmMessage("user", request.prompt))
    else:
        return TransportFailure(ErrorCode.BAD_REQUEST, "Provide either prompt or messages")

    for message in messages:
        if message.role not in VALID_ROLES:
            return TransportFailure(ErrorCode.BAD_REQUEST, "messages.role must be system|user|assistant")

    system = next((m.content for m in messages if m.role == "system"), "")
    if len(system) > MAX_SYSTEM_CHARS:
        return TransportFailure(ErrorCode.BAD_REQUEST, f"system is too large (max {MAX_SYSTEM_CHARS} chars)")

    prompt = next((m.content for m in messages if m.role == "user"), "")
    if len(prompt) > MAX_PROMPT_CHARS:
        return TransportFailure(ErrorCode.BAD_REQUEST, f"prompt is too large (max {MAX_PROMPT_CHARS} chars)")

    return messages


def _upstream_error_message(response: httpx.Response) -> str:
    try:
        detail = response.json()
    except ValueError:
        return f"Upstream error ({response.status_code}): {response.text[:200]}"
    if isinstance(detail, dict):
        error = detail.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if detail.get("message"):
            return str(detail["message"])
    return f"Upstream error ({response.status_code})"


class ChatCompletionsClient:
    """Transport for any OpenAI-compatible /chat/completions endpoint (Groq by default)."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout_ms: int | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.api_url = f"{(base_url or settings.llm_base_url).rstrip('/')}/chat/completions"
        self.model = model or settings.llm_model
        self.default_timeout_ms = timeout_ms or settings.llm_timeout_ms
        self.http_client = http_client

        logger.debug(f"   API URL: {self.api_url}")
        logger.debug(f"   Model: {self.model}")

    def build_payload(self, request: TransportRequest, messages: list[LlmMessage]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model or self.model,
            "messages": [m.to_dict() for m in messages],
        }

        temperature = request.temperature if request.temperature is not None else settings.llm_temperature
        if temperature is not None:
            payload["temperature"] = max(0.0, min(2.0, temperature))

        max_tokens = request.max_output_tokens or settings.llm_max_output_tokens
        if max_tokens is not None:
            payload["max_tokens"] = max(1, min(8192, max_tokens))

        if request.response_format == "application/json":
            if request.response_json_schema is not None:
                payload["response_format"] = {
                    "type": "json_schema",
                    "json_schema": {"name": "response", "schema": request.response_json_schema},
                }
            else:
                payload["response_format"] = {"type": "json_object"}

        return payload

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.http_client is not None:
            return await self.http_client.post(self.api_url, json=payload, headers=headers)
        # The deadline race owns the timeout, so httpx gets none of its own
        async with httpx.AsyncClient(timeout=None) as client:
            return await client.post(self.api_url, json=payload, headers=headers)

    async def generate(
        self,
        request: TransportRequest,
        cancellation: CancellationToken | None = None,
    ) -> TransportResponse:
        """
        Send one chat completion request.

        Never raises for expected failures: every outcome is a TransportSuccess
        or a TransportFailure carrying an ErrorCode.
        """
        if not self.api_key:
            return TransportFailure(ErrorCode.CONFIG_MISSING, "LLM_API_KEY is not configured")

        messages = build_messages(request)
        if isinstance(messages, TransportFailure):
            return messages

        payload = self.build_payload(request, messages)
        timeout_ms = clamp_timeout_ms(request.timeout_ms, self.default_timeout_ms)

        start_time = time.time()
        logger.debug(f"   Request payload: model={payload['model']}, messages={len(messages)}")

        try:
            response = await race_with_deadline(
                self._post(payload),
                timeout=timeout_ms / 1000,
                cancellation=cancellation,
            )
        except OperationCancelled:
            return TransportFailure(ErrorCode.CANCELLED, "Request cancelled")
        except (OperationTimedOut, httpx.TimeoutException):
            return TransportFailure(ErrorCode.TIMEOUT, f"Request timed out after {timeout_ms}ms")
        except httpx.TransportError as e:
            logger.warning(f"⚠️  LLM request failed: {e}")
            return TransportFailure(ErrorCode.NETWORK_ERROR, "Network request failed")
        except Exception as e:
            logger.error(f"❌ Unexpected error calling LLM API: {e}", exc_info=True)
            return TransportFailure(ErrorCode.INTERNAL_ERROR, f"Unexpected error: {e}")

        if response.is_error:
            code = map_upstream_status(response.status_code)
            message = _upstream_error_message(response)
            logger.error(f"❌ LLM API HTTP error {response.status_code} ({code}): {message}")
            return TransportFailure(code, message, status=response.status_code)

        try:
            result = response.json()
            choice = result["choices"][0]
            content = choice["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            return TransportFailure(
                ErrorCode.INVALID_RESPONSE, "Invalid chat completion response", status=response.status_code
            )

        duration = time.time() - start_time
        logger.info(f"✅ Generated response ({len(content or '')} chars) in {duration:.3f}s")

        return TransportSuccess(
            output_text=content or "",
            model=result.get("model", payload["model"]),
            finish_reason=choice.get("finish_reason"),
            request_id=result.get("id"),
        )
