# -*- coding: utf-8 -*-
"""Detect — tolerant parsing of chat-model JSON replies."""

from __future__ import annotations

import ast
import json
import re
from typing import Any, Dict, List, Optional

_FENCE_START_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END_RE = re.compile(r"\s*```$")
_NUM_RE = re.compile(r"-?\d+(?:\.\d+)?")

_OPENERS = {"{": "}", "[": "]"}


def _remove_trailing_commas(text: str) -> str:
    """Remove trailing commas before ``}``/``]`` while preserving string literals."""
    out: list[str] = []
    in_str = False
    escaped = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_str:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == "\"":
                in_str = False
            i += 1
            continue

        if ch == "\"":
            in_str = True
            out.append(ch)
            i += 1
            continue

        if ch == ",":
            j = i + 1
            while j < len(text) and text[j] in " \t\r\n":
                j += 1
            if j < len(text) and text[j] in "}]":
                i += 1
                continue

        out.append(ch)
        i += 1
    return "".join(out)


def _strip_fences(text: str) -> str:
    cleaned = _FENCE_START_RE.sub("", text.strip())
    return _FENCE_END_RE.sub("", cleaned)


def _iter_json_candidates(text: str) -> list[str]:
    """Balanced top-level ``{...}`` or ``[...]`` spans found in arbitrary text.

    Models wrap JSON in prose or code fences; string literals are respected
    while scanning.
    """
    cleaned = _strip_fences(text)
    candidates: list[str] = []
    in_str = False
    escaped = False
    stack: list[str] = []
    start_idx: int | None = None

    for i, ch in enumerate(cleaned):
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == "\"":
                in_str = False
            continue

        if ch == "\"":
            if stack:
                in_str = True
            continue

        if ch in _OPENERS:
            if not stack:
                start_idx = i
            stack.append(_OPENERS[ch])
            continue

        if stack and ch == stack[-1]:
            stack.pop()
            if not stack and start_idx is not None:
                candidates.append(cleaned[start_idx : i + 1])
                start_idx = None

    return candidates


def _sanitize_json_like(text: str) -> str:
    cleaned = text
    cleaned = cleaned.replace("：", ":").replace("，", ",")
    cleaned = cleaned.replace("“", "\"").replace("”", "\"").replace("‘", "'").replace("’", "'")
    cleaned = _remove_trailing_commas(cleaned)
    cleaned = re.sub(r"\bNaN\b", "null", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"\b-?Infinity\b", "null", cleaned, flags=re.IGNORECASE)
    return cleaned


def _python_literal(text: str) -> Any:
    py = re.sub(r"\bnull\b", "None", text, flags=re.IGNORECASE)
    py = re.sub(r"\btrue\b", "True", py, flags=re.IGNORECASE)
    py = re.sub(r"\bfalse\b", "False", py, flags=re.IGNORECASE)
    return ast.literal_eval(py)


def parse_model_output_json(content: str) -> Any:
    """First JSON object or array that parses out of a model reply.

    Falls back to Python-literal parsing for single-quoted output.
    Raises ValueError when nothing parses.
    """
    last_error: Exception | None = None
    for candidate in _iter_json_candidates(content or ""):
        sanitized = _sanitize_json_like(candidate)
        for attempt in (candidate, sanitized):
            try:
                parsed = json.loads(attempt)
            except json.JSONDecodeError as exc:
                last_error = exc
                continue
            if isinstance(parsed, (dict, list)):
                return parsed

        for attempt in (candidate, sanitized):
            try:
                parsed = _python_literal(attempt)
            except (ValueError, SyntaxError) as exc:
                last_error = exc
                continue
            if isinstance(parsed, (dict, list)):
                return parsed

    raise ValueError(f"Failed to parse model JSON: {last_error or 'no JSON found'}")


def extract_message_text(data: object) -> str:
    """Concatenated assistant text from an OpenAI-compatible ``choices`` response."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list):
        return ""
    out: list[str] = []
    for choice in choices:
        if not isinstance(choice, dict):
            continue
        msg = choice.get("message")
        if isinstance(msg, dict):
            maybe = msg.get("content")
            if isinstance(maybe, str) and maybe:
                out.append(maybe)
        delta = choice.get("delta")
        if isinstance(delta, dict):
            maybe = delta.get("content")
            if isinstance(maybe, str) and maybe:
                out.append(maybe)
        maybe_text = choice.get("text")
        if isinstance(maybe_text, str) and maybe_text:
            out.append(maybe_text)
    return "".join(out)


def coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        m = _NUM_RE.search(value.strip().replace(",", ""))
        return float(m.group(0)) if m else None
    return None


def _first_present(obj: Dict[str, Any], keys: List[str]) -> Any:
    for k in keys:
        if obj.get(k) not in (None, ""):
            return obj.get(k)
    return None


def extract_items(parsed: Any) -> List[Any]:
    if isinstance(parsed, list):
        return parsed
    if not isinstance(parsed, dict):
        return []
    for key in ("items", "foods", "detections"):
        if isinstance(parsed.get(key), list):
            return parsed[key]
    result = parsed.get("result")
    if isinstance(result, dict) and isinstance(result.get("items"), list):
        return result["items"]
    return []


def normalize_items(items: Any) -> List[Dict[str, Any]]:
    """Map loosely-shaped model items to ``{name, confidence, category, portion_hint}``."""
    if not isinstance(items, list):
        return []
    out: List[Dict[str, Any]] = []
    for raw in items:
        if isinstance(raw, str):
            raw = {"name": raw}
        if not isinstance(raw, dict):
            continue

        name = _first_present(
            raw, ["name", "productName", "displayName", "title", "description", "label", "food_name", "item_name", "food"]
        )
        name = str(name).strip() if name is not None else ""
        if not name:
            continue

        confidence = coerce_float(_first_present(raw, ["confidence", "conf", "score"]))
        if confidence is None:
            confidence = 0.8
        if 1 < confidence <= 100:
            confidence = confidence / 100.0
        confidence = max(0.0, min(1.0, confidence))

        category = _first_present(raw, ["category", "food_category"])
        hint = _first_present(raw, ["portion_hint", "portionHint", "hint", "hints", "portion"])
        out.append(
            {
                "name": name,
                "confidence": confidence,
                "category": str(category).strip().lower() if category else "unknown",
                "portion_hint": str(hint) if hint is not None else None,
            }
        )
    return out
