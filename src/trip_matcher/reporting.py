"""Reporting utilities for trip matching output."""

from __future__ import annotations

import json
from typing import Any

from .aggregation import availability_level, build_day_availability
from .matching import MatchResult, respondent_status
from .models import Plan, to_iso
from .recommendation import recommend


def build_result_payload(
    plan: Plan,
    result: MatchResult,
    top_n: int | None = None,
    include_recommendation: bool = True,
) -> dict[str, Any]:
    """Build structured deterministic output payload.

    Args:
        plan (Plan): Parsed plan.
        result (MatchResult): Match result for the plan.
        top_n (int | None): Optional cap on listed ranges. Defaults to None.
        include_recommendation (bool): Score trip-length windows and add the
            prioritized recommendation. Defaults to True.

    Returns:
        dict[str, Any]: JSON-serializable result payload.
    """
    compatible_ranges = result.compatible_ranges[:top_n]
    partial_payload: dict[str, Any] | None = None
    if result.partial is not None:
        partial_payload = result.partial.to_dict()
        partial_payload["partialRanges"] = partial_payload["partialRanges"][:top_n]

    best_range = result.best_range
    respondent_statuses = [
        {
            "id": respondent.respondent_id,
            "name": respondent.name,
            "status": respondent_status(respondent, plan, best_range),
        }
        for respondent in plan.respondents
    ]

    total = len(plan.respondents)
    day_records = build_day_availability(
        plan.start_range,
        plan.end_range,
        plan.respondents,
    )
    day_availability = [
        {
            "date": to_iso(record.day),
            "count": record.count,
            "level": availability_level(record.count, total),
            "respondents": list(record.respondent_ids),
        }
        for record in day_records.values()
    ]

    recommendation_payload: dict[str, Any] | None = None
    if include_recommendation:
        recommendation = recommend(plan)
        if recommendation is not None:
            recommendation_payload = recommendation.to_dict()

    return {
        "plan": {
            "name": plan.name,
            "startRange": to_iso(plan.start_range),
            "endRange": to_iso(plan.end_range),
            "numDays": plan.num_days,
        },
        "totalRespondents": total,
        "compatibleRanges": [item.to_dict() for item in compatible_ranges],
        "partial": partial_payload,
        "bestRange": best_range.to_dict() if best_range is not None else None,
        "respondentStatuses": respondent_statuses,
        "dayAvailability": day_availability,
        "recommendation": recommendation_payload,
    }


def _format_range(range_payload: dict[str, Any]) -> str:
    """Format one serialized range as a single report line fragment.

    Args:
        range_payload (dict[str, Any]): Range with ``start``, ``end``,
            ``availableCount`` and ``totalCount`` keys.

    Returns:
        str: Text such as "2024-06-02 -> 2024-06-05 (3/3 free)".
    """
    return (
        f"{range_payload['start']} -> {range_payload['end']} "
        f"({range_payload['availableCount']}/{range_payload['totalCount']} free)"
    )


def format_result_text(payload: dict[str, Any]) -> str:
    """Format deterministic payload as human-readable text.

    Args:
        payload (dict[str, Any]): Structured result payload.

    Returns:
        str: Plain-text report.
    """
    lines: list[str] = []
    plan = payload["plan"]
    title = f"{plan['name']}: " if plan["name"] else ""
    lines.append(
        f"{title}Window {plan['startRange']} to {plan['endRange']}, "
        f"{plan['numDays']}-day trip "
        f"({payload['totalRespondents']} respondents)"
    )
    lines.append("")

    if payload["totalRespondents"] == 0:
        lines.append("No responses yet.")
        return "\n".join(lines)

    compatible = payload["compatibleRanges"]
    if compatible:
        lines.append("Dates that work for everyone:")
        for index, range_payload in enumerate(compatible, start=1):
            lines.append(f"- #{index} {_format_range(range_payload)}")
    else:
        partial = payload["partial"] or {}
        lines.append("No window works for everyone.")
        partial_ranges = partial.get("partialRanges", [])
        if partial_ranges:
            lines.append("Best available windows:")
            for index, range_payload in enumerate(partial_ranges, start=1):
                lines.append(f"- #{index} {_format_range(range_payload)}")
        else:
            lines.append("No window is long enough for the trip.")
        lines.append(
            "Respondents with enough consecutive days: "
            f"{partial.get('respondentsWithSufficientAvailability', 0)}/"
            f"{partial.get('totalRespondents', 0)}"
        )
        blocking = partial.get("blockingRespondents", [])
        if blocking:
            lines.append(f"Blocking respondents: {', '.join(blocking)}")

    lines.append("")
    lines.append("Respondents:")
    for status in payload["respondentStatuses"]:
        lines.append(f"- {status['name']}: {status['status']}")

    levels: dict[str, int] = {}
    for day in payload["dayAvailability"]:
        levels[day["level"]] = levels.get(day["level"], 0) + 1
    lines.append("")
    lines.append(
        "Day availability: "
        + ", ".join(
            f"{level}={levels.get(level, 0)}"
            for level in ("high", "partial", "low", "none")
        )
    )

    recommendation = payload.get("recommendation")
    if recommendation is not None:
        lines.append("")
        lines.extend(_format_recommendation(recommendation))

    return "\n".join(lines)


def _format_recommendation(recommendation: dict[str, Any]) -> list[str]:
    """Format the serialized recommendation section of the text report.

    Args:
        recommendation (dict[str, Any]): Payload with ``primary`` and
            ``alternatives`` keys.

    Returns:
        list[str]: Report lines.
    """
    primary = recommendation["primary"]
    lines = [
        f"Recommendation ({primary['label']}, {primary['status']}):",
        f"{primary['headline']} {primary['detail']}.",
        primary["recommendation"],
    ]
    for window in primary["alternativeWindows"]:
        missing = ", ".join(window["missing"]) or "nobody"
        lines.append(
            f"- {window['start']} -> {window['end']} "
            f"({window['availableCount']}/{window['totalCount']} free, "
            f"missing: {missing})"
        )
    alternatives = recommendation["alternatives"]
    if alternatives:
        lines.append(
            "Also matched: " + ", ".join(item["label"] for item in alternatives)
        )
    return lines


def format_result_json(payload: dict[str, Any], indent: int = 2) -> str:
    """Format deterministic payload as pretty JSON.

    Args:
        payload (dict[str, Any]): Structured result payload.
        indent (int): JSON indentation. Defaults to 2.

    Returns:
        str: JSON string.
    """
    return json.dumps(payload, indent=indent, ensure_ascii=True)


def build_openai_narrative(
    payload: dict[str, Any],
    api_key: str,
    model: str = "gpt-4.1-mini",
) -> str:
    """Generate optional narrative from deterministic output via OpenAI.

    Args:
        payload (dict[str, Any]): Structured deterministic payload.
        api_key (str): OpenAI API key.
        model (str): OpenAI model name. Defaults to gpt-4.1-mini.

    Returns:
        str: Narrative text generated by the OpenAI API.

    Raises:
        RuntimeError: If OpenAI package is missing or API call fails.
    """
    try:
        from openai import OpenAI
    except ImportError as exc:
        raise RuntimeError(
            "OpenAI narrative requested but 'openai' package is not installed."
        ) from exc

    # Per-day detail is noise for a short summary.
    summary = {key: value for key, value in payload.items() if key != "dayAvailability"}

    try:
        client = OpenAI(api_key=api_key)
        completion = client.responses.create(
            model=model,
            input=[
                {
                    "role": "system",
                    "content": (
                        "You are a group trip planning assistant. "
                        "Summarize the date options concisely and objectively."
                    ),
                },
                {
                    "role": "user",
                    "content": (
                        "Using this deterministic matching payload, produce a "
                        "short structured summary with sections: Best Dates, "
                        "Who Fits, and What Blocks Everyone Going.\n\n"
                        f"{json.dumps(summary, ensure_ascii=True)}"
                    ),
                },
            ],
        )
    except Exception as exc:  # pragma: no cover - external API behavior
        raise RuntimeError(f"OpenAI request failed: {exc}") from exc

    text = completion.output_text.strip()
    if not text:
        raise RuntimeError("OpenAI request succeeded but returned empty text.")
    return text
