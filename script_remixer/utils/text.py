"""Text helpers for prompt construction and response parsing."""

import json
import re

_FENCE_RE = re.compile(r"```(?:json)?\s*\n(.*?)\n```", re.DOTALL)


def detect_language(text: str) -> str:
    """Detect if text is primarily Chinese or English.

    Returns "zh" or "en".
    """
    sample = text[:500]
    cjk_count = sum(1 for c in sample if '\u4e00' <= c <= '\u9fff')
    total_alpha = max(1, sum(1 for c in sample if c.isalpha()))
    return "zh" if (cjk_count / total_alpha) > 0.3 else "en"


def resolve_language(setting: str, sample: str) -> str:
    """Turn a configured language ("auto", "zh", "en") into a concrete one."""
    if setting == "auto":
        return detect_language(sample)
    return setting


def parse_json_response(text: str) -> dict | list:
    """Extract JSON from a model response that may be wrapped in markdown fences.

    Raises ValueError when no JSON document can be recovered.
    """
    m = _FENCE_RE.search(text)
    if m:
        try:
            return json.loads(m.group(1))
        except json.JSONDecodeError:
            pass

    cleaned = text.strip()
    if cleaned.startswith('{') or cleaned.startswith('['):
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError:
            pass

    # Outermost structure, ignoring any chatter around it
    for open_ch, close_ch in [('{', '}'), ('[', ']')]:
        start = cleaned.find(open_ch)
        end = cleaned.rfind(close_ch)
        if start != -1 and end > start:
            try:
                return json.loads(cleaned[start:end + 1])
            except json.JSONDecodeError:
                continue

    raise ValueError(f"Could not parse JSON from response: {text[:200]}...")
