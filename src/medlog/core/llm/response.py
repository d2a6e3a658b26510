"""Response parsing and guardrail enforcement for generated insight text."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

MIN_LINE_LENGTH = 20

_NUMBERED = re.compile(r"^\s*\d+[.)]\s+(.*)$")
_BULLET = re.compile(r"^\s*[•\-*]\s+(.*)$")

# Heuristic detection of unsafe guidance. Generated text is free-form, so
# we look for common phrasings instead of trying to understand each claim.
PROHIBITED_INDICATORS = {
    "making medical diagnoses": (
        "you have been diagnosed",
        "you are suffering from",
        "you have a condition",
        "this is a sign of",
    ),
    "changing prescriptions": (
        "stop taking",
        "double your dose",
        "double the dose",
        "increase your dose",
        "decrease your dose",
        "skip your next dose",
        "i prescribe",
    ),
    "making disease predictions": (
        "you will develop",
        "this will lead to",
        "guaranteed to cure",
    ),
}


@dataclass
class GuardrailCheck:
    """Result of checking generated insights against the guardrails."""

    passed: bool
    flags: list[str] = field(default_factory=list)


def check_guardrails(content: str) -> GuardrailCheck:
    """Flag prohibited phrasings anywhere in ``content``."""
    flags: list[str] = []
    content_lower = content.lower()
    for action, patterns in PROHIBITED_INDICATORS.items():
        for pattern in patterns:
            if pattern in content_lower:
                flags.append(f"prohibited_pattern_detected: {action} ('{pattern}')")

    if flags:
        logger.warning("Guardrail flags on generated insights: %s", flags)
    return GuardrailCheck(passed=not flags, flags=flags)


def sanitize_insights(insights: list[str]) -> tuple[list[str], GuardrailCheck]:
    """Drop every insight line that trips a guardrail.

    Returns the surviving lines and the combined check over all of them.
    """
    kept: list[str] = []
    flags: list[str] = []
    for line in insights:
        check = check_guardrails(line)
        if check.passed:
            kept.append(line)
        else:
            flags.extend(check.flags)
    return kept, GuardrailCheck(passed=not flags, flags=flags)


def _from_json(text: str) -> list[str] | None:
    candidate = text.strip()
    if candidate.startswith("```"):
        candidate = candidate.strip("`")
        if candidate.lower().startswith("json"):
            candidate = candidate[4:]
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    if isinstance(data, dict):
        data = data.get("insights")
    if not isinstance(data, list):
        return None
    return [str(item).strip() for item in data if str(item).strip()]


def extract_insights(text: str) -> list[str]:
    """Split generated text into individual insights.

    Tries, in order: a JSON ``{"insights": [...]}`` object or bare list,
    numbered lines, bullet lines, then any reasonably long line.
    """
    if not text or not text.strip():
        return []

    parsed = _from_json(text)
    if parsed is not None:
        return parsed

    lines = text.splitlines()
    for pattern in (_NUMBERED, _BULLET):
        matches = [m.group(1).strip() for m in (pattern.match(line) for line in lines) if m]
        matches = [m for m in matches if m]
        if matches:
            return matches

    long_lines = [
        line.strip()
        for line in lines
        if len(line.strip()) > MIN_LINE_LENGTH and not line.strip().startswith("```")
    ]
    return long_lines or [text.strip()]
