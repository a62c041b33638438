#!/usr/bin/env python3
"""
Enrollment Feasibility Prediction

Estimates how long a protocol will take to enroll, its screen-failure rate,
how many sites it needs and what puts enrollment at risk.
"""

import logging
import math
from functools import reduce
from typing import Callable, List, Tuple

from .models import EnrollmentFeasibility, EnrollmentRisk, ProtocolFeatures

logger = logging.getLogger(__name__)

# Months needed to enroll 100 patients
BASELINE_MONTHS_PER_100 = {
    "oncology": 8,
    "cardiology": 12,
    "neurology": 15,
    "infectious_disease": 6,
    "endocrinology": 10,
    "psychiatry": 14,
    "other": 12,
}

PATIENTS_PER_SITE_PER_MONTH = {"common": 3, "uncommon": 2}

Factor = Tuple[str, Callable[[ProtocolFeatures], bool], float]


def _age_span_below(years: int) -> Callable[[ProtocolFeatures], bool]:
    return lambda f: f.age_span is not None and f.age_span < years


# Applied in order; every factor that holds multiplies the running total.
DIFFICULTY_FACTORS: Tuple[Factor, ...] = (
    ("more than 15 eligibility criteria", lambda f: f.total_criteria > 15, 1.5),
    ("more than 10 eligibility criteria", lambda f: 10 < f.total_criteria <= 15, 1.2),
    ("narrow age range", _age_span_below(20), 1.3),
    ("elderly only", lambda f: f.age_range is not None and f.age_range[0] > 65, 1.4),
    ("pediatric only", lambda f: f.age_range is not None and f.age_range[1] < 18, 1.2),
    ("single gender", lambda f: f.gender_restriction != "both", 1.5),
    ("very rare disease", lambda f: f.disease_prevalence == "very_rare", 3.0),
    ("rare disease", lambda f: f.disease_prevalence == "rare", 2.0),
    ("uncommon disease", lambda f: f.disease_prevalence == "uncommon", 1.3),
    ("washout over 30 days", lambda f: f.washout_days > 30, 1.2),
    ("washout over 90 days", lambda f: f.washout_days > 90, 1.4),
    ("geographic restriction", lambda f: f.geographic_restriction, 1.3),
    ("biomarker required", lambda f: f.biomarker_required, 1.6),
    ("prior treatment required", lambda f: f.prior_treatment_required, 1.4),
    ("more than 2 comorbidity exclusions", lambda f: f.comorbidity_restrictions > 2, 1.3),
    ("invasive procedures", lambda f: f.invasive_procedures, 1.2),
    ("inpatient stays", lambda f: f.inpatient_stays, 1.4),
    ("daily visits", lambda f: f.visit_frequency == "daily", 2.0),
    ("weekly visits", lambda f: f.visit_frequency == "weekly", 1.4),
    ("biweekly visits", lambda f: f.visit_frequency == "biweekly", 1.2),
    ("high trial competition", lambda f: f.competing_trials == "high", 1.5),
    ("medium trial competition", lambda f: f.competing_trials == "medium", 1.2),
)

DIFFICULTY_TIERS = ((1.2, "Easy"), (1.8, "Moderate"), (2.5, "Challenging"))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class EnrollmentPredictor:
    """Stateless predictor; the factor table can be replaced per instance."""

    def __init__(self, factors: Tuple[Factor, ...] = DIFFICULTY_FACTORS):
        self.factors = factors

    def applied_factors(self, features: ProtocolFeatures) -> List[Tuple[str, float]]:
        return [(name, multiplier) for name, applies, multiplier in self.factors if applies(features)]

    def difficulty_multiplier(self, features: ProtocolFeatures) -> float:
        return reduce(lambda total, item: total * item[1], self.applied_factors(features), 1.0)

    @staticmethod
    def baseline_months(features: ProtocolFeatures) -> float:
        per_100 = BASELINE_MONTHS_PER_100.get(features.therapeutic_area, BASELINE_MONTHS_PER_100["other"])
        return features.sample_size / 100 * per_100

    @staticmethod
    def screen_failure_rate(features: ProtocolFeatures) -> int:
        rate = 30
        if features.total_criteria > 15:
            rate += 25
        elif features.total_criteria > 10:
            rate += 15
        if features.biomarker_required:
            rate += 20
        if features.prior_treatment_required:
            rate += 15
        rate += features.comorbidity_restrictions * 5
        return min(85, rate)

    @staticmethod
    def recommended_sites(features: ProtocolFeatures, estimated_months: int) -> int:
        per_site = PATIENTS_PER_SITE_PER_MONTH.get(features.disease_prevalence, 1)
        sites = math.ceil(features.sample_size / (per_site * max(1, estimated_months)))
        return max(1, min(100, sites))

    @staticmethod
    def categorize_difficulty(multiplier: float) -> str:
        for upper, tier in DIFFICULTY_TIERS:
            if multiplier <= upper:
                return tier
        return "Difficult"

    @staticmethod
    def risk_factors(features: ProtocolFeatures) -> List[EnrollmentRisk]:
        risks = []
        if features.total_criteria > 15:
            risks.append(EnrollmentRisk(
                factor="Complex Eligibility",
                impact="High",
                description=f"{features.total_criteria} eligibility criteria may exclude many potential patients",
                mitigation="Review each criterion for necessity; consider broadening inclusion criteria",
            ))
        if features.biomarker_required:
            risks.append(EnrollmentRisk(
                factor="Biomarker Requirement",
                impact="High",
                description="Biomarker testing will increase screen failure rate significantly",
                mitigation="Partner with labs for rapid testing; consider broader biomarker definition",
            ))
        if features.disease_prevalence in ("rare", "very_rare"):
            risks.append(EnrollmentRisk(
                factor="Rare Disease",
                impact="High",
                description="Limited patient population will slow enrollment",
                mitigation="Expand to international sites; partner with patient advocacy groups",
            ))
        if features.washout_days > 90:
            risks.append(EnrollmentRisk(
                factor="Long Washout Period",
                impact="Medium",
                description=f"{features.washout_days} day washout may deter patients",
                mitigation="Consider if full washout is necessary; allow stable background therapy",
            ))
        if features.visit_frequency in ("weekly", "daily"):
            risks.append(EnrollmentRisk(
                factor="Frequent Visits",
                impact="Medium",
                description=f"{features.visit_frequency} visits create high patient burden",
                mitigation="Consider home nursing visits; reduce non-essential assessments",
            ))
        return risks

    @staticmethod
    def recommendations(features: ProtocolFeatures, risks: List[EnrollmentRisk]) -> List[str]:
        recommendations = []
        if len(risks) > 2:
            recommendations.append("Consider protocol amendments to reduce enrollment barriers")
        if features.sample_size > 500:
            recommendations.append("Large sample size - consider adaptive enrollment strategies")
        if features.disease_prevalence in ("rare", "very_rare"):
            recommendations.append("Partner with patient registries and advocacy groups for recruitment")
        if features.geographic_restriction:
            recommendations.append("Expand geographic scope if possible to increase patient pool")
        if not recommendations:
            recommendations.append("Enrollment plan appears feasible with current design")
        return recommendations

    @staticmethod
    def confidence(features: ProtocolFeatures) -> int:
        confidence = 70
        if features.therapeutic_area != "other":
            confidence += 10
        if features.disease_prevalence == "common":
            confidence += 15
        if features.sample_size < 200:
            confidence += 10
        if not features.biomarker_required:
            confidence += 5
        return min(95, confidence)

    def predict(self, features: ProtocolFeatures) -> EnrollmentFeasibility:
        applied = self.applied_factors(features)
        multiplier = reduce(lambda total, item: total * item[1], applied, 1.0)
        baseline = self.baseline_months(features)
        estimated_months = max(1, _round_half_up(baseline * multiplier))
        risks = self.risk_factors(features)

        logger.debug(f"Enrollment: baseline {baseline:.1f} months x {multiplier:.2f} "
                     f"-> {estimated_months} months")

        return EnrollmentFeasibility(
            estimated_months=estimated_months,
            baseline_months=baseline,
            difficulty_multiplier=round(multiplier, 4),
            applied_factors=applied,
            screen_failure_rate=self.screen_failure_rate(features),
            recommended_sites=self.recommended_sites(features, estimated_months),
            difficulty=self.categorize_difficulty(multiplier),
            risk_factors=risks,
            recommendations=self.recommendations(features, risks),
            confidence=self.confidence(features),
        )


def predict_enrollment(features: ProtocolFeatures) -> EnrollmentFeasibility:
    """Predict enrollment duration, screen failures, sites and risks."""
    return EnrollmentPredictor().predict(features)
