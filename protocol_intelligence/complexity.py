#!/usr/bin/env python3
"""
Protocol Complexity Scoring

The overall score is the weighted sum used for every historically collected
registry study, so scores computed here stay comparable with the reference
corpus:

    (inclusion + exclusion) * 2 + primary * 10 + secondary * 5 + other * 2
    + 10 if randomized + 15 if masked + phases * 5 if more than one phase

clamped to [0, 100].
"""

import logging
from typing import Dict, Optional, Sequence, Tuple

from .models import ComplexityScore, ProtocolFeatures
from .stats import percentile_rank

logger = logging.getLogger(__name__)

CATEGORY_BANDS = ((25, "Simple"), (50, "Moderate"), (75, "Complex"))
VISIT_FREQUENCY_WEIGHTS = {
    "daily": 2.0,
    "weekly": 1.5,
    "biweekly": 1.2,
    "monthly": 1.0,
    "quarterly": 0.8,
}
MIN_REFERENCE_SCORES = 10


def categorize_complexity(score: float) -> str:
    for upper, name in CATEGORY_BANDS:
        if score <= upper:
            return name
    return "Highly Complex"


def score_counts(inclusion: Optional[int] = 0,
                 exclusion: Optional[int] = 0,
                 primary: Optional[int] = 0,
                 secondary: Optional[int] = 0,
                 other: Optional[int] = 0,
                 randomized: bool = False,
                 masked: bool = False,
                 phases: Optional[int] = 0) -> Tuple[int, Dict[str, int]]:
    """
    Complexity score from raw sub-counts.

    Missing counts (None) contribute nothing. Returns the clamped score and
    the per-factor contributions.
    """
    phases = phases or 0
    contributions = {
        "eligibility_criteria": ((inclusion or 0) + (exclusion or 0)) * 2,
        "primary_endpoints": (primary or 0) * 10,
        "secondary_endpoints": (secondary or 0) * 5,
        "other_endpoints": (other or 0) * 2,
        "randomization": 10 if randomized else 0,
        "masking": 15 if masked else 0,
        "multiple_phases": phases * 5 if phases > 1 else 0,
    }
    overall = max(0, min(100, sum(contributions.values())))
    return overall, contributions


def _tier(value: float, thresholds: Sequence[float]) -> int:
    """20/40/60/80 for the first threshold ``value`` does not exceed, else 100."""
    for index, threshold in enumerate(thresholds):
        if value <= threshold:
            return 20 * (index + 1)
    return 100


class ComplexityScorer:
    """Turns extracted features into a ComplexityScore."""

    def breakdown(self, features: ProtocolFeatures) -> Dict[str, int]:
        frequency_weight = VISIT_FREQUENCY_WEIGHTS.get(features.visit_frequency, 1.0)
        endpoints = features.primary_endpoints + features.secondary_endpoints + features.exploratory_endpoints
        procedures = (features.procedures_per_visit + features.lab_requirements
                      + features.imaging_requirements)

        logic = min(50, features.conditional_statements * 5)
        if features.study_arms > 2:
            logic += 20
        if features.cohorts > 1:
            logic += 15
        if features.adaptive_design:
            logic += 25
        logic += features.interim_analyses * 10

        return {
            "eligibility": _tier(features.total_criteria, (5, 10, 15, 25)),
            "visits": _tier(features.total_visits * frequency_weight, (5, 10, 15, 25)),
            "endpoints": _tier(endpoints, (3, 8, 15, 25)),
            "procedures": _tier(procedures, (5, 12, 20, 30)),
            "length": _tier(features.word_count, (5000, 15000, 30000, 50000)),
            "logic": min(100, logic),
        }

    @staticmethod
    def band_percentile(score: int) -> float:
        if score <= 30:
            return 25.0
        if score <= 45:
            return 50.0
        if score <= 65:
            return 75.0
        if score <= 80:
            return 90.0
        return 95.0

    @staticmethod
    def confidence(features: ProtocolFeatures) -> int:
        confidence = 60 + 10 * len(features.sections_found)
        if features.randomized or features.masked or features.phases:
            confidence += 5
        return min(95, confidence)

    @staticmethod
    def recommendations(features: ProtocolFeatures, breakdown: Dict[str, int]) -> list:
        recommendations = []
        if breakdown["eligibility"] > 70:
            recommendations.append(
                f"Consider reducing eligibility criteria from {features.total_criteria} to under 15 total")
        if breakdown["visits"] > 70:
            recommendations.append(
                f"Visit schedule is intensive ({features.total_visits} visits) - "
                f"consider reducing frequency or combining visits")
        if breakdown["procedures"] > 70:
            recommendations.append(
                "High procedure burden - consider which assessments are truly necessary for endpoints")
        if breakdown["logic"] > 70:
            recommendations.append(
                "Complex conditional logic detected - simplify decision trees where possible")
        if features.adaptive_design and any(value > 70 for value in breakdown.values()):
            recommendations.append(
                "Adaptive design adds significant complexity - ensure operational feasibility")
        if not recommendations:
            recommendations.append("Protocol complexity is well-balanced for the study objectives")
        return recommendations

    def score(self, features: ProtocolFeatures,
              reference_scores: Optional[Sequence[float]] = None) -> ComplexityScore:
        overall, contributions = score_counts(
            inclusion=features.inclusion_criteria,
            exclusion=features.exclusion_criteria,
            primary=features.primary_endpoints,
            secondary=features.secondary_endpoints,
            other=features.exploratory_endpoints,
            randomized=features.randomized,
            masked=features.masked,
            phases=len(features.phases),
        )
        breakdown = self.breakdown(features)
        logger.debug(f"Complexity score {overall} from contributions {contributions}")

        if reference_scores is not None and len(reference_scores) >= MIN_REFERENCE_SCORES:
            percentile = round(percentile_rank(sorted(reference_scores), overall), 1)
        else:
            percentile = self.band_percentile(overall)

        return ComplexityScore(
            overall=overall,
            category=categorize_complexity(overall),
            breakdown=breakdown,
            contributions=contributions,
            percentile=percentile,
            confidence=self.confidence(features),
            recommendations=self.recommendations(features, breakdown),
        )


def score_complexity(features: ProtocolFeatures,
                     reference_scores: Optional[Sequence[float]] = None) -> ComplexityScore:
    """Score a protocol's design complexity on a 0-100 scale."""
    return ComplexityScorer().score(features, reference_scores)
