"""Shared utilities for parsing LLM responses."""

from __future__ import annotations

import json
import re
from typing import Optional

_THINK_RE = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
_JSON_FENCE_RE = re.compile(r"```json\s*(.*?)```", re.IGNORECASE | re.DOTALL)
_FENCE_RE = re.compile(r"```\s*(.*?)```", re.DOTALL)


def extract_json_block(raw: str) -> Optional[str]:
    """Locate a JSON object in an LLM response.

    Tries in order:
    1. Drop <think>...</think> reasoning blocks
    2. Unwrap a fenced code block (```json first, then any fence)
    3. Cut from the first '{' to the last '}'

    Returns None when no object-shaped text remains.
    """
    if not raw:
        return None

    text = _THINK_RE.sub("", raw).strip()

    fence = _JSON_FENCE_RE.search(text) or _FENCE_RE.search(text)
    if fence:
        text = fence.group(1).strip()

    if not text.startswith("{"):
        start = text.find("{")
        end = text.rfind("}")
        if start != -1 and end > start:
            text = text[start:end + 1].strip()

    if not text.startswith("{") or not text.endswith("}"):
        return None
    return text


def parse_llm_json(raw: str) -> dict:
    """Parse a JSON object from an LLM response, or return an empty dict."""
    block = extract_json_block(raw)
    if block is None:
        return {}
    try:
        data = json.loads(block)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}
