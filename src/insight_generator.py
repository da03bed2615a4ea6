"""Human-readable findings derived from observations and ranked correlations."""

from __future__ import annotations

import logging
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from constants import DIRECTION_THRESHOLD
from models import BodyPart, CorrelationResult, Insight, InsightKind, PainObservation

log = logging.getLogger("insight_generator")

MOST_AFFECTED_TITLE = "Most affected area"
AVERAGE_PAIN_TITLE = "Average pain level"
MAIN_FACTOR_TITLE = "Main correlated factor"


def most_affected_region(
    observations: Sequence[PainObservation],
) -> Optional[Tuple[BodyPart, int]]:
    """Highest-count body region; ties go to the earlier BodyPart member."""
    counts = Counter(part for obs in observations for part in obs.body_parts)
    if not counts:
        return None
    best = max(counts.values())
    for part in BodyPart:
        if counts.get(part) == best:
            return part, best
    return None


def average_pain(observations: Sequence[PainObservation]) -> float:
    if not observations:
        return 0.0
    return sum(obs.pain_level for obs in observations) / len(observations)


def generate(
    observations: Sequence[PainObservation],
    correlations: Sequence[CorrelationResult],
) -> List[Insight]:
    """Build insights in fixed order: pattern, summary, correlation.

    ``correlations`` must already be ranked (strongest first), as returned
    by ``correlation_engine.analyze``.
    """
    observations = list(observations or [])
    insights: List[Insight] = []

    top = most_affected_region(observations)
    if top is not None:
        part, count = top
        insights.append(Insight(
            kind=InsightKind.PATTERN,
            title=MOST_AFFECTED_TITLE,
            description=f"{part.english_name} pain recorded {count} times",
        ))

    insights.append(Insight(
        kind=InsightKind.SUMMARY,
        title=AVERAGE_PAIN_TITLE,
        description=f"Average pain level of {average_pain(observations):.1f}/10 across recorded episodes",
    ))

    if correlations and abs(correlations[0].coefficient) > DIRECTION_THRESHOLD:
        insights.append(Insight(
            kind=InsightKind.CORRELATION,
            title=MAIN_FACTOR_TITLE,
            description=correlations[0].description,
        ))

    log.debug("Generated %d insights from %d observations", len(insights), len(observations))
    return insights
