"""Helpers for building concise insight text for report export and UI cards."""

from __future__ import annotations

from typing import Optional, Sequence

from models import Insight, InsightKind, RiskAssessment

MAX_BULLET_LEN = 280


def build_concise_summary(
    insights: Optional[Sequence[Insight]],
    assessment: Optional[RiskAssessment] = None,
) -> str:
    """Create a strict 3-bullet, human-friendly summary."""
    insights = list(insights or [])
    by_kind = {}
    for insight in insights:
        by_kind.setdefault(insight.kind, insight)

    def clip(s: str, limit: int) -> str:
        s = s.replace("\n", " ").strip()
        if len(s) <= limit:
            return s
        return s[: limit - 3].rstrip() + "..."

    def bullet(label: str, value: str) -> str:
        prefix = f"- {label}: "
        allowed = max(48, MAX_BULLET_LEN - len(prefix))
        return prefix + clip(value, allowed)

    if not insights:
        top_finding = "Insufficient data in this run."
    else:
        lead = (
            by_kind.get(InsightKind.CORRELATION)
            or by_kind.get(InsightKind.PATTERN)
            or insights[0]
        )
        top_finding = lead.description

    summary = by_kind.get(InsightKind.SUMMARY)
    average = summary.description if summary else "No pain episodes recorded yet."

    if assessment is None:
        tomorrow = "No forecast available; showing the neutral default risk."
    else:
        tomorrow = (
            f"{assessment.risk_percent}% risk "
            f"({assessment.risk_level.english_name.lower()})."
        )

    return (
        f"{bullet('Top finding', top_finding)}\n"
        f"{bullet('Average pain', average)}\n"
        f"{bullet('Tomorrow', tomorrow)}"
    )
