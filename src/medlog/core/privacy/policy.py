"""Privacy policy for controlling what analytics data reaches the LLM.

The generator should generally operate on:
- headline figures (rates, counts, trend labels)
- category-level patterns (worst weekday, worst hour band)
- a handful of named correlations, when the user allows it

Raw event logs never go into prompts. Timestamps are reduced to dates and
every list is capped.
"""

from __future__ import annotations

from typing import Any, Literal

PrivacyMode = Literal["strict", "standard", "explicit"]

MAX_LIST_ITEMS = 5

# Keys that can identify a person or a specific record.
_IDENTIFYING_KEYS = {"user_id", "id", "medication_id", "first_dose", "second_dose"}


def _round_floats(obj: Any, ndigits: int = 2) -> Any:
    if isinstance(obj, float):
        return round(obj, ndigits)
    if isinstance(obj, dict):
        return {k: _round_floats(v, ndigits=ndigits) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_round_floats(v, ndigits=ndigits) for v in obj]
    return obj


def _cap_lists(obj: Any, limit: int) -> Any:
    if isinstance(obj, dict):
        return {k: _cap_lists(v, limit) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_cap_lists(v, limit) for v in obj[:limit]]
    return obj


def _strip_identifiers(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _strip_identifiers(v) for k, v in obj.items() if k not in _IDENTIFYING_KEYS}
    if isinstance(obj, list):
        return [_strip_identifiers(v) for v in obj]
    return obj


def build_llm_data_context(
    *,
    full_data_context: dict[str, Any],
    privacy_mode: PrivacyMode,
    max_items: int = MAX_LIST_ITEMS,
) -> dict[str, Any]:
    """Build the minimized summary that will be rendered into the LLM prompt.

    ``full_data_context`` carries ``topic``, ``period``, ``headline`` (scalar
    figures), ``patterns`` (bucketed figures) and ``details`` (named items
    such as medications and correlations).
    """
    provenance = {
        "data_source": full_data_context.get("data_source"),
        "data_source_note": full_data_context.get("data_source_note"),
    }

    base: dict[str, Any] = {
        "topic": full_data_context.get("topic"),
        "period": full_data_context.get("period"),
        "headline": _round_floats(full_data_context.get("headline", {}), ndigits=1),
        "provenance": {k: v for k, v in provenance.items() if v},
    }

    if privacy_mode == "strict":
        # No medication or symptom names; only aggregate figures.
        return base

    if privacy_mode == "standard":
        base["patterns"] = _cap_lists(_round_floats(full_data_context.get("patterns", {}), ndigits=1), max_items)
        base["details"] = _strip_identifiers(
            _cap_lists(_round_floats(full_data_context.get("details", {}), ndigits=2), max_items)
        )
        return base

    # explicit
    # Everything the analyzers produced, still capped so prompts stay bounded.
    explicit_ctx = _cap_lists(_round_floats(dict(full_data_context), ndigits=2), max_items)
    return explicit_ctx
