"""Prompt templates for each insight topic."""

from __future__ import annotations

import json
from typing import Any

TOPIC_INSTRUCTIONS = {
    "adherence": (
        "Analyze this medication adherence summary and provide 3-5 personalized, "
        "actionable insights to help improve adherence. Identify the biggest risk "
        "factors for missed doses and lead with the most impactful suggestion."
    ),
    "consumption": (
        "Analyze when and how regularly each medication is taken. Point out "
        "consistent routines, irregular intervals, and doses taken too close "
        "together."
    ),
    "efficacy": (
        "Analyze this medication efficacy summary. Focus on patterns related to "
        "effectiveness, side effects, timing and lifestyle factors. Maintain a "
        "supportive tone while being specific and practical."
    ),
    "correlations": (
        "Analyze these medication and symptom correlations. Explain the "
        "strongest relationships in plain language, note timing patterns, and "
        "remind the reader that correlation is not causation."
    ),
    "health": (
        "Analyze how medication adherence relates to the user's reported "
        "feeling, symptoms and vital signs. Highlight favorable associations "
        "and anything worth raising with a healthcare provider."
    ),
}

DEFAULT_TOPIC = "adherence"


def topic_instructions(topic: str) -> str:
    return TOPIC_INSTRUCTIONS.get(topic, TOPIC_INSTRUCTIONS[DEFAULT_TOPIC])


def build_insight_user_message(topic: str, summary: dict[str, Any]) -> str:
    """User message carrying the minimized summary as pretty-printed JSON."""
    return f"""Topic: {topic}

DATA:
{json.dumps(summary, indent=2, default=str)}

Return a JSON object: {{"insights": ["Insight 1", "Insight 2", "Insight 3"]}}"""
