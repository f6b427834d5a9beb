"""
Defensive JSON extraction from LLM output.

Model text is untrusted: it may wrap JSON in markdown fences, add prose
before or after, or be truncated mid-object. Try, in order:
1. the whole text
2. each fenced ```json block
3. each balanced {...} or [...] substring, scanning left to right
"""

import json
import re

_FENCE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)


def _balanced_spans(text: str):
    """Yield balanced {...}/[...] substrings. String-literal aware."""
    openers = {"{": "}", "[": "]"}
    start = 0
    while True:
        positions = [p for p in (text.find("{", start), text.find("[", start)) if p != -1]
        if not positions:
            return
        begin = min(positions)

        stack: list[str] = []
        in_string = False
        escaped = False
        end = -1
        for i in range(begin, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch in openers:
                stack.append(openers[ch])
            elif ch in "}]":
                if not stack or stack.pop() != ch:
                    break
                if not stack:
                    end = i + 1
                    break

        if end != -1:
            yield text[begin:end]
        start = begin + 1


def extract_json(text: str):
    """
    Parse the first JSON object or array found in text.
    Raises ValueError when nothing parses.
    """
    if not text or not text.strip():
        raise ValueError("Empty response")

    candidates = [text.strip()]
    candidates.extend(m.group(1).strip() for m in _FENCE.finditer(text))

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, (dict, list)):
            return value

    for span in _balanced_spans(text):
        try:
            return json.loads(span)
        except json.JSONDecodeError:
            continue

    raise ValueError("No JSON object or array found in response")


def extract_json_object(text: str) -> dict:
    """extract_json, but the result must be an object."""
    value = extract_json(text)
    if not isinstance(value, dict):
        raise ValueError(f"Expected JSON object, got {type(value).__name__}")
    return value
