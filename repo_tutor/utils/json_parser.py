"""
Utility functions for parsing JSON responses from LLMs.
Handles markdown code blocks and prose wrapped around the payload.
"""

import json
import logging
import re
from typing import Any

from repo_tutor.utils.results import Err, Ok, Result

logger = logging.getLogger(__name__)

# First fenced block, optionally tagged ```json
CODE_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def _extract_code_block(text: str) -> str | None:
    match = CODE_BLOCK_PATTERN.search(text)
    return match.group(1).strip() if match else None


def _extract_between(text: str, open_char: str, close_char: str) -> str | None:
    start = text.find(open_char)
    end = text.rfind(close_char)
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start : end + 1].strip()


def _try_loads(candidate: str | None) -> tuple[bool, Any]:
    if not candidate:
        return False, None
    try:
        return True, json.loads(candidate)
    except (json.JSONDecodeError, RecursionError):
        return False, None


def parse_json_loosely(response_text: str) -> Result[Any, str]:
    """
    Recover a JSON value from raw LLM output.

    Strategies, first success wins:
    1. the whole (trimmed) text
    2. the first fenced code block, optionally tagged `json`
    3. the span from the first '{' to the last '}'
    4. the span from the first '[' to the last ']'

    Args:
        response_text: Raw response text from LLM

    Returns:
        Ok(parsed value) or Err(error message)
    """
    text = (response_text or "").strip()
    if not text:
        return Err("Empty output")

    strategies = (
        ("whole text", lambda: text),
        ("code block", lambda: _extract_code_block(text)),
        ("object span", lambda: _extract_between(text, "{", "}")),
        ("array span", lambda: _extract_between(text, "[", "]")),
    )

    for name, extract in strategies:
        parsed_ok, value = _try_loads(extract())
        if parsed_ok:
            if name != "whole text":
                logger.debug(f"   Parsed JSON via {name}")
            return Ok(value)

    logger.debug(f"   Could not parse JSON from response: {text[:200]}")
    return Err("Failed to parse JSON")
