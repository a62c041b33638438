# tests/test_recommendations.py
"""Tests for protocol_intelligence/recommendations.py - prioritized recommendations."""

import pytest

from protocol_intelligence.models import (
    Benchmark,
    ComplexityScore,
    EnrollmentFeasibility,
    OutlierAlert,
    VisitBurdenAnalysis,
)
from protocol_intelligence.recommendations import (
    QUICK_FIXES,
    estimate_time_to_optimize,
    generate_quick_fixes,
    generate_recommendations,
    prioritize,
    protocol_health,
)


def make_complexity(eligibility=100, overall=80) -> ComplexityScore:
    return ComplexityScore(
        overall=overall,
        category="Highly Complex",
        breakdown={"eligibility": eligibility, "visits": 20, "endpoints": 20,
                   "procedures": 20, "length": 20, "logic": 0},
        contributions={"eligibility_criteria": 60},
        percentile=95.0,
        confidence=80,
    )


def make_enrollment(difficulty="Difficult", screen_failure_rate=60, sites=10) -> EnrollmentFeasibility:
    return EnrollmentFeasibility(
        estimated_months=30,
        baseline_months=12.0,
        difficulty_multiplier=2.6,
        applied_factors=[],
        screen_failure_rate=screen_failure_rate,
        recommended_sites=sites,
        difficulty=difficulty,
        risk_factors=[],
        recommendations=[],
        confidence=80,
    )


def make_burden(patient=30, compliance=20, hours=10) -> VisitBurdenAnalysis:
    return VisitBurdenAnalysis(
        total_visits=10,
        minutes_per_visit=60,
        total_study_hours=hours,
        patient_burden_score=patient,
        site_burden_score=30,
        overall_burden="Low",
        compliance_risk=compliance,
        predicted_dropout_rate=11.0,
        retention_rate=89.0,
        visit_details=[],
        recommendations=[],
    )


class TestGenerateRecommendations:
    """Tests for rule firing, ordering and the summary."""

    def test_rules_fire_and_sort(self):
        summary = generate_recommendations(make_complexity(), make_enrollment(), make_burden())
        assert [r.id for r in summary.top_recommendations] == [
            "improve-enrollment-feasibility",
            "reduce-eligibility-criteria",
            "reduce-screen-failure",
        ]
        assert "30 eligibility criteria" in summary.top_recommendations[1].description

    def test_summary_figures(self):
        summary = generate_recommendations(make_complexity(), make_enrollment(), make_burden())
        assert summary.protocol_health == 43
        assert summary.total_potential_improvement == pytest.approx(4 + 20 + 15)
        assert summary.estimated_time_to_optimize == "3 months"
        assert [r.id for r in summary.strategic_improvements] == [
            "improve-enrollment-feasibility",
            "reduce-eligibility-criteria",
            "reduce-screen-failure",
        ]
        assert summary.quick_wins == []

    def test_top_five_only(self):
        summary = generate_recommendations(
            make_complexity(),
            make_enrollment(sites=40),
            make_burden(patient=80, compliance=60, hours=60),
        )
        assert len(summary.top_recommendations) == 5
        assert [r.id for r in summary.quick_wins] == ["optimize-site-strategy", "optimize-time-commitment"]

    def test_nothing_to_recommend(self):
        summary = generate_recommendations(
            make_complexity(eligibility=40, overall=30),
            make_enrollment(difficulty="Easy", screen_failure_rate=30),
            make_burden(),
        )
        assert summary.top_recommendations == []
        assert summary.estimated_time_to_optimize == "0 weeks"

    def test_critical_benchmark_outliers(self):
        outlier = OutlierAlert("Eligibility Criteria", "Critical", "Extremely restrictive eligibility",
                               "Prioritize criteria review", "Less than 2% of studies")
        warning = OutlierAlert("Sample Size", "Warning", "Large", "Review", "Only 5%")
        bench = Benchmark("Phase 2", "oncology", [], [outlier, warning], 40, [])
        summary = generate_recommendations(
            make_complexity(eligibility=40, overall=30),
            make_enrollment(difficulty="Easy", screen_failure_rate=30),
            make_burden(),
            bench,
        )
        assert [r.id for r in summary.top_recommendations] == ["benchmark-critical-0"]
        assert summary.top_recommendations[0].industry_example == "Less than 2% of studies"


class TestHelpers:
    """prioritize(), protocol_health() and estimate_time_to_optimize()."""

    def test_prioritize_stable(self):
        summary = generate_recommendations(make_complexity(), make_enrollment(), make_burden())
        shuffled = list(reversed(summary.top_recommendations))
        ordered = prioritize(shuffled)
        assert ordered[0].priority == "Critical"
        # equal priority and effort keep their input order
        assert [r.id for r in ordered[1:]] == ["reduce-screen-failure", "reduce-eligibility-criteria"]

    def test_health_uses_benchmark_score(self):
        bench = Benchmark("Phase 2", "other", [], [], 90, [])
        with_bench = protocol_health(make_complexity(), make_enrollment(), make_burden(), bench)
        without = protocol_health(make_complexity(), make_enrollment(), make_burden(), None)
        assert without == 43
        assert with_bench == 48

    def test_time_to_optimize_units(self):
        assert estimate_time_to_optimize([]) == "0 weeks"
        summary = generate_recommendations(
            make_complexity(), make_enrollment(sites=40), make_burden(patient=80, compliance=60, hours=60))
        assert estimate_time_to_optimize(summary.top_recommendations) == "2 quarters"


class TestQuickFixes:
    """One-click wording fixes."""

    def test_phrases_detected(self):
        text = "Patients must have documented disease. Samples are shipped within 24 hours."
        fixes = generate_quick_fixes(text)
        assert [f.id for f in fixes] == ["soften-documentation-requirements", "extend-time-windows"]
        assert all(f.one_click_fix for f in fixes)

    def test_returns_copies(self):
        fixes = generate_quick_fixes("must have documented")
        assert fixes[0] is not QUICK_FIXES[0][1]
        assert fixes[0] == QUICK_FIXES[0][1]

    def test_no_phrases(self):
        assert generate_quick_fixes(None) == []
