"""Prompt templates for the narrative agent."""

import json
from typing import Any


def _dump(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


def analytics_prompt(facts: dict) -> str:
    return (
        "You are a corporate carbon accounting expert.\n"
        "Analyse the following JSON and return:\n"
        "- A strategic summary (direct tone, with figures)\n"
        "- 3 to 5 key findings\n"
        "- 3 prioritised recommendations\n"
        "The `scopes` split is a fixed-ratio estimate, not a measured breakdown;\n"
        "`rule_scope` on each latest record is the scope its emission rule assigns.\n\n"
        f"JSON: {_dump(facts)}"
    )


def suppliers_prompt(suppliers: list[dict]) -> str:
    return (
        "Act as a sustainable procurement lead.\n"
        "Based on these supplier aggregates (JSON), produce:\n"
        "- A structured list of suppliers with spend, CO2 and priority (high/medium/low)\n"
        "- One recommended action per supplier.\n\n"
        f"JSON: {_dump(suppliers)}"
    )


def chat_prompt(snapshot: dict, question: str) -> str:
    return (
        f"You are the lead climate assistant. JSON context: {_dump(snapshot)}.\n"
        f"Answer with an expert but accessible tone. Question: {question}"
    )


def report_prompt(summary: dict) -> str:
    return (
        "You are a climate assistant writing carbon footprint reports for companies.\n\n"
        "Here is a JSON summary of the results (total emissions, per-scope totals, counts):\n"
        f"{_dump(summary)}\n\n"
        "Write a concise executive report containing:\n"
        "- An executive summary (under 10 lines).\n"
        "- An analysis per scope (1, 2, 3).\n"
        "- 5 actionable recommendations with a qualitative CO2 gain estimate (low/medium/high).\n\n"
        "Use a professional tone accessible to non-expert executives."
    )
