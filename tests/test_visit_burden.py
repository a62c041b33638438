# tests/test_visit_burden.py
"""Tests for protocol_intelligence/visit_burden.py - visit burden scoring."""

import pytest

from protocol_intelligence.models import ProcedureCount, SpecialRequirement, VisitFactors
from protocol_intelligence.visit_burden import VisitBurdenCalculator, calculate_visit_burden


def make_factors(**overrides) -> VisitFactors:
    values = dict(
        total_visits=10,
        visit_frequency="monthly",
        study_duration_months=12,
        screening_visits=1,
        treatment_visits=5,
        follow_up_visits=2,
        procedures=ProcedureCount(),
        special_requirements=[],
        geographic_factors=[],
    )
    values.update(overrides)
    return VisitFactors(**values)


class TestExtraction:
    """Tests for visit factor extraction from text."""

    def test_vital_sign_synonyms(self):
        counts = VisitBurdenCalculator.count_procedures("Heart rate and blood pressure are recorded")
        assert counts.vital_signs == 2
        assert counts.blood_draws == 0

    def test_procedure_counts(self):
        text = "Blood draw at each visit. MRI at baseline and week 12. ECG, then EKG. Blood sample for PK sample."
        counts = VisitBurdenCalculator.count_procedures(text)
        assert counts.blood_draws == 2
        assert counts.imaging_scans == 1
        assert counts.ecgs == 2
        assert counts.pharmacokinetic_samples == 1

    def test_procedure_counts_capped(self):
        counts = VisitBurdenCalculator.count_procedures("vital signs " * 50)
        assert counts.vital_signs == 20

    def test_special_requirements(self):
        text = "Patients must be fasting. An overnight stay is required. Sedation is used for endoscopy."
        requirements = VisitBurdenCalculator.special_requirements(text)
        assert [r.type for r in requirements] == ["fasting", "overnight_stay", "sedation"]

    def test_geographic_default_urban(self):
        factors = VisitBurdenCalculator.geographic_factors("Standard sites")
        assert [f.type for f in factors] == ["urban"]

    def test_extract_defaults_for_empty_text(self):
        factors = VisitBurdenCalculator().extract_visit_factors(None)
        assert factors.total_visits == 1
        assert factors.visit_frequency == "monthly"
        assert factors.treatment_visits == 5
        assert factors.follow_up_visits == 2
        assert factors.procedures.total() == 0


    def test_schedule_segments(self):
        text = ("Screening: visit on day 1 and day 2.\nBaseline visit.\n"
                "Treatment: cycle 1, cycle 2, week 3.\n"
                "Follow-up contact at month 6 and month 12, conclusion.")
        factors = VisitBurdenCalculator().extract_visit_factors(text)
        assert factors.screening_visits == 3
        assert factors.treatment_visits == 3
        assert factors.follow_up_visits == 3

    def test_unterminated_segment_uses_default(self):
        factors = VisitBurdenCalculator().extract_visit_factors("Treatment: cycle 1, cycle 2, cycle 3")
        assert factors.treatment_visits == 5

class TestScoring:
    """Tests for burden scores and derived rates."""

    def test_minutes_per_visit(self):
        factors = make_factors(total_visits=2, procedures=ProcedureCount(blood_draws=2))
        assert VisitBurdenCalculator.minutes_per_visit(factors) == 75

    def test_requirement_minutes_spread_over_visits(self):
        fasting = SpecialRequirement("fasting", 1, "Fasting required before procedures", 60)
        factors = make_factors(total_visits=4, special_requirements=[fasting])
        assert VisitBurdenCalculator.minutes_per_visit(factors) == 75

    def test_patient_burden(self):
        factors = make_factors(visit_frequency="biweekly", total_visits=16, study_duration_months=30)
        assert VisitBurdenCalculator.patient_burden(factors) == 50 + 20 + 15

    def test_patient_burden_capped(self):
        stay = SpecialRequirement("overnight_stay", 4, "Overnight hospital stay required", 720)
        factors = make_factors(visit_frequency="daily", special_requirements=[stay])
        assert VisitBurdenCalculator.patient_burden(factors) == 100

    def test_site_burden(self):
        procedures = ProcedureCount(biopsies=2, imaging_scans=3, pharmacokinetic_samples=1)
        factors = make_factors(procedures=procedures)
        assert VisitBurdenCalculator.site_burden(factors) == 25 + 10 + 9 + 4

    @pytest.mark.parametrize("patient,site,category", [
        (30, 30, "Low"),
        (31, 31, "Moderate"),
        (55, 55, "Moderate"),
        (75, 75, "High"),
        (80, 80, "Very High"),
    ])
    def test_categorize(self, patient, site, category):
        assert VisitBurdenCalculator.categorize_burden(patient, site) == category

    @pytest.mark.parametrize("score,area,rate", [
        (80, None, 47.0),
        (50, None, 23.0),
        (30, None, 11.0),
        (80, "oncology", 37.5),
        (30, "neurology", 23.0),
        (30, "psychiatry", 11.0),
    ])
    def test_dropout_rate(self, score, area, rate):
        assert VisitBurdenCalculator.dropout_rate(score, area) == pytest.approx(rate)

    def test_compliance_risk_capped(self):
        factors = make_factors(visit_frequency="daily", study_duration_months=36)
        assert VisitBurdenCalculator.compliance_risk(factors, 100) == 95


class TestAnalysis:
    """Tests for the assembled VisitBurdenAnalysis."""

    def test_sample_protocol(self, sample_protocol):
        result = calculate_visit_burden(sample_protocol, "oncology")
        assert result.total_visits == 2
        assert result.patient_burden_score == 25
        assert result.overall_burden == "Low"
        assert result.predicted_dropout_rate == pytest.approx(19.5)
        assert result.retention_rate == pytest.approx(80.5)

    def test_visit_details(self):
        factors = make_factors(treatment_visits=8, procedures=ProcedureCount(biopsies=1))
        details = VisitBurdenCalculator.visit_details(factors)
        names = [d.name for d in details]
        assert names[:2] == ["Screening", "Baseline/Randomization"]
        assert names.count("Treatment Visit 1") == 1
        assert len([n for n in names if n.startswith("Treatment Visit")]) == 5
        assert names[-1] == "End of Study"
        assert details[0].burdensome_factors == ["Tissue biopsy required"]

    def test_weekly_schedule_recommendations(self):
        factors = make_factors(visit_frequency="weekly", total_visits=20)
        types = [r.type for r in VisitBurdenCalculator.recommendations(factors, 60)]
        assert types == ["reduce_frequency", "combine_visits"]
