#!/usr/bin/env python3
"""
Protocol Optimization Recommendations

Turns the complexity, enrollment, visit burden and benchmark results into a
prioritized list of concrete changes, plus an overall protocol health score.
"""

import logging
import math
from dataclasses import replace
from typing import List, Optional

from .models import (
    Benchmark,
    ComplexityScore,
    EnrollmentFeasibility,
    ExpectedImpact,
    Recommendation,
    RecommendationSummary,
    VisitBurdenAnalysis,
)

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"Critical": 4, "High": 3, "Medium": 2, "Low": 1}
EFFORT_ORDER = {"Easy": 3, "Moderate": 2, "Difficult": 1}
EFFORT_WEEKS = {"Easy": 1, "Moderate": 3, "Difficult": 6}
ENROLLMENT_HEALTH = {"Easy": 90, "Moderate": 70, "Challenging": 50}

HEALTH_WEIGHTS = {"complexity": 0.25, "enrollment": 0.35, "burden": 0.25, "benchmark": 0.15}
DEFAULT_BENCHMARK_HEALTH = 60


def complexity_recommendations(complexity: ComplexityScore) -> List[Recommendation]:
    breakdown = complexity.breakdown
    recommendations = []

    if breakdown["eligibility"] > 70:
        criteria = complexity.contributions.get("eligibility_criteria", 0) // 2
        recommendations.append(Recommendation(
            id="reduce-eligibility-criteria",
            priority="High",
            category="Complexity",
            title="Reduce Eligibility Criteria Complexity",
            description=f"Your protocol has {criteria or 'many'} eligibility criteria, "
                        f"creating enrollment barriers.",
            expected_impact=ExpectedImpact(
                "Eligibility Complexity", breakdown["eligibility"],
                max(50, breakdown["eligibility"] - 20), "Reduce screen failure rate by 15-25%"),
            effort="Moderate",
            time_to_implement="2-3 weeks",
            industry_example="Moderna COVID-19 vaccine trial reduced criteria from 23 to 12, "
                             "improving enrollment by 40%",
        ))

    if breakdown["visits"] > 75:
        recommendations.append(Recommendation(
            id="optimize-visit-schedule",
            priority="High",
            category="Complexity",
            title="Optimize Visit Schedule",
            description="Intensive visit schedule may impact patient compliance and site burden.",
            expected_impact=ExpectedImpact(
                "Visit Complexity", breakdown["visits"],
                max(50, breakdown["visits"] - 25), "Reduce patient dropout by 20%"),
            effort="Moderate",
            time_to_implement="1-2 weeks",
            industry_example="Pfizer oncology trials combined 3 early visits into 2, maintaining data quality",
        ))

    if breakdown["procedures"] > 80:
        recommendations.append(Recommendation(
            id="streamline-procedures",
            priority="Medium",
            category="Complexity",
            title="Streamline Procedure Requirements",
            description="High procedure burden per visit may overwhelm patients and sites.",
            expected_impact=ExpectedImpact(
                "Procedure Complexity", breakdown["procedures"],
                max(60, breakdown["procedures"] - 15), "Reduce visit duration by 30 minutes"),
            effort="Easy",
            time_to_implement="1 week",
        ))

    if breakdown["logic"] > 75:
        recommendations.append(Recommendation(
            id="simplify-conditional-logic",
            priority="Medium",
            category="Complexity",
            title="Simplify Conditional Logic",
            description="Complex if/then statements create operational challenges for sites.",
            expected_impact=ExpectedImpact(
                "Logic Complexity", breakdown["logic"],
                max(50, breakdown["logic"] - 25), "Reduce protocol deviations by 30%"),
            effort="Difficult",
            time_to_implement="3-4 weeks",
        ))

    return recommendations


def enrollment_recommendations(enrollment: EnrollmentFeasibility) -> List[Recommendation]:
    recommendations = []

    if enrollment.difficulty in ("Difficult", "Challenging"):
        recommendations.append(Recommendation(
            id="improve-enrollment-feasibility",
            priority="Critical",
            category="Enrollment",
            title="Address Enrollment Barriers",
            description=f"Enrollment is predicted to be {enrollment.difficulty.lower()} with "
                        f"{enrollment.estimated_months} months timeline.",
            expected_impact=ExpectedImpact(
                "Enrollment Timeline", enrollment.estimated_months,
                max(6, enrollment.estimated_months - 4), "Accelerate enrollment by 4-6 months"),
            effort="Moderate",
            time_to_implement="2-4 weeks",
            industry_example="Roche broadened HER2+ criteria, reducing enrollment time from 18 to 12 months",
        ))

    if enrollment.screen_failure_rate > 50:
        recommendations.append(Recommendation(
            id="reduce-screen-failure",
            priority="High",
            category="Enrollment",
            title="Reduce Screen Failure Rate",
            description=f"High screen failure rate ({enrollment.screen_failure_rate}%) "
                        f"indicates overly restrictive criteria.",
            expected_impact=ExpectedImpact(
                "Screen Failure Rate", enrollment.screen_failure_rate,
                max(25, enrollment.screen_failure_rate - 15), "Increase enrollment efficiency by 25%"),
            effort="Moderate",
            time_to_implement="2-3 weeks",
        ))

    if enrollment.recommended_sites > 30:
        recommendations.append(Recommendation(
            id="optimize-site-strategy",
            priority="Medium",
            category="Enrollment",
            title="Optimize Site Selection Strategy",
            description=f"Large number of recommended sites ({enrollment.recommended_sites}) "
                        f"suggests enrollment challenges.",
            expected_impact=ExpectedImpact(
                "Required Sites", enrollment.recommended_sites,
                max(15, enrollment.recommended_sites - 10), "Reduce operational complexity"),
            effort="Easy",
            time_to_implement="1 week",
        ))

    return recommendations


def burden_recommendations(burden: VisitBurdenAnalysis) -> List[Recommendation]:
    recommendations = []

    if burden.patient_burden_score > 70:
        recommendations.append(Recommendation(
            id="reduce-patient-burden",
            priority="High",
            category="Burden",
            title="Reduce Patient Burden",
            description=f"High patient burden score ({burden.patient_burden_score}/100) "
                        f"may impact compliance and retention.",
            expected_impact=ExpectedImpact(
                "Patient Burden", burden.patient_burden_score,
                max(50, burden.patient_burden_score - 20), "Improve retention by 15-20%"),
            effort="Moderate",
            time_to_implement="2-3 weeks",
            industry_example="Novartis implemented home nursing visits, reducing patient burden by 30%",
        ))

    if burden.compliance_risk > 50:
        recommendations.append(Recommendation(
            id="improve-compliance-risk",
            priority="High",
            category="Burden",
            title="Address Compliance Risk Factors",
            description=f"High dropout risk ({burden.compliance_risk}%) threatens study completion.",
            expected_impact=ExpectedImpact(
                "Dropout Risk", burden.compliance_risk,
                max(25, burden.compliance_risk - 15), "Reduce dropout rate by 15%"),
            effort="Moderate",
            time_to_implement="2-4 weeks",
        ))

    if burden.total_study_hours > 50:
        recommendations.append(Recommendation(
            id="optimize-time-commitment",
            priority="Medium",
            category="Burden",
            title="Optimize Total Time Commitment",
            description=f"Extensive time commitment ({burden.total_study_hours} hours) may deter participation.",
            expected_impact=ExpectedImpact(
                "Total Study Time", burden.total_study_hours,
                max(30, burden.total_study_hours - 10), "Reduce time burden by 20%"),
            effort="Easy",
            time_to_implement="1-2 weeks",
        ))

    return recommendations


def benchmark_recommendations(benchmark: Optional[Benchmark]) -> List[Recommendation]:
    if benchmark is None:
        return []
    return [
        Recommendation(
            id=f"benchmark-critical-{index}",
            priority="Critical",
            category="Benchmarking",
            title=f"Address {outlier.metric} Outlier",
            description=outlier.message,
            expected_impact=ExpectedImpact(outlier.metric, 95, 75, "Align with industry standards"),
            effort="Difficult",
            time_to_implement="3-6 weeks",
            industry_example=outlier.prevalence,
        )
        for index, outlier in enumerate(benchmark.outliers)
        if outlier.severity == "Critical"
    ]


def prioritize(recommendations: List[Recommendation]) -> List[Recommendation]:
    """Highest priority first, easier changes first within a priority. Stable."""
    return sorted(
        recommendations,
        key=lambda r: (-PRIORITY_ORDER.get(r.priority, 0), -EFFORT_ORDER.get(r.effort, 0)),
    )


def protocol_health(complexity: ComplexityScore, enrollment: EnrollmentFeasibility,
                    burden: VisitBurdenAnalysis, benchmark: Optional[Benchmark]) -> int:
    complexity_health = max(0, 100 - complexity.overall)
    enrollment_health = ENROLLMENT_HEALTH.get(enrollment.difficulty, 30)
    burden_health = max(0, 100 - (burden.patient_burden_score + burden.compliance_risk) / 2)
    benchmark_health = (benchmark.overall_score if benchmark else 0) or DEFAULT_BENCHMARK_HEALTH

    return round(
        complexity_health * HEALTH_WEIGHTS["complexity"]
        + enrollment_health * HEALTH_WEIGHTS["enrollment"]
        + burden_health * HEALTH_WEIGHTS["burden"]
        + benchmark_health * HEALTH_WEIGHTS["benchmark"]
    )


def total_improvement(recommendations: List[Recommendation]) -> float:
    return sum(max(0, r.expected_impact.current_value - r.expected_impact.projected_value)
               for r in recommendations)


def estimate_time_to_optimize(recommendations: List[Recommendation]) -> str:
    weeks = sum(EFFORT_WEEKS.get(r.effort, 3) * (1.5 if r.priority == "Critical" else 1)
                for r in recommendations)
    if weeks <= 4:
        return f"{math.ceil(weeks)} weeks"
    if weeks <= 12:
        return f"{math.ceil(weeks / 4)} months"
    return f"{math.ceil(weeks / 12)} quarters"


def generate_recommendations(complexity: ComplexityScore,
                             enrollment: EnrollmentFeasibility,
                             visit_burden: VisitBurdenAnalysis,
                             benchmark: Optional[Benchmark] = None) -> RecommendationSummary:
    """Collect, prioritize and summarize recommendations from every analysis."""
    collected = (complexity_recommendations(complexity)
                 + enrollment_recommendations(enrollment)
                 + burden_recommendations(visit_burden)
                 + benchmark_recommendations(benchmark))
    ordered = prioritize(collected)
    top = ordered[:5]
    logger.debug(f"Generated {len(collected)} recommendations")

    return RecommendationSummary(
        protocol_health=protocol_health(complexity, enrollment, visit_burden, benchmark),
        top_recommendations=top,
        quick_wins=[r for r in ordered if r.effort == "Easy" and r.priority != "Low"][:3],
        strategic_improvements=[r for r in ordered if r.priority in ("Critical", "High")][:3],
        total_potential_improvement=total_improvement(top),
        estimated_time_to_optimize=estimate_time_to_optimize(top),
    )


# (phrase found in the text, recommendation offered for it)
QUICK_FIXES = (
    ("must have documented", Recommendation(
        id="soften-documentation-requirements",
        priority="Medium",
        category="Complexity",
        title="Soften Documentation Requirements",
        description='Replace "must have documented" with "should have available records of"',
        expected_impact=ExpectedImpact("Enrollment Barriers", 100, 85, "Reduce screen failures by 10-15%"),
        effort="Easy",
        time_to_implement="Immediate",
        one_click_fix=True,
    )),
    ("within 24 hours", Recommendation(
        id="extend-time-windows",
        priority="Medium",
        category="Complexity",
        title="Extend Time Windows",
        description='Replace "within 24 hours" with "within 48-72 hours" for better feasibility',
        expected_impact=ExpectedImpact("Operational Complexity", 100, 80, "Improve site compliance by 20%"),
        effort="Easy",
        time_to_implement="Immediate",
        one_click_fix=True,
    )),
)


def generate_quick_fixes(text: Optional[str]) -> List[Recommendation]:
    """One-click wording changes for phrases that commonly hurt feasibility."""
    text = text or ""
    return [replace(fix) for phrase, fix in QUICK_FIXES if phrase in text]
