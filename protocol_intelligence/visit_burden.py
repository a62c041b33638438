#!/usr/bin/env python3
"""
Visit Burden Calculation

Reads the visit schedule, procedures and special requirements out of a
protocol and scores how demanding the study is for patients and for sites,
including the expected compliance risk and dropout rate.
"""

import logging
import re
from typing import List, Optional, Pattern, Tuple

from .extraction import VisitScheduleExtractor, find_section
from .models import (
    BurdenRecommendation,
    GeographicFactor,
    ProcedureCount,
    SpecialRequirement,
    VisitBurdenAnalysis,
    VisitDetail,
    VisitFactors,
)

logger = logging.getLogger(__name__)

PROCEDURE_PATTERNS = {
    "blood_draws": re.compile(r"blood\s+draw|phlebotomy|blood\s+sample|venipuncture", re.IGNORECASE),
    "imaging_scans": re.compile(r"ct\s+scan|\bmri\b|x[-\s]?ray|ultrasound|pet\s+scan|imaging", re.IGNORECASE),
    "physical_exams": re.compile(r"physical\s+exam|clinical\s+exam|examination", re.IGNORECASE),
    "questionnaires": re.compile(r"questionnaire|survey|assessment\s+scale|diary", re.IGNORECASE),
    "specialized_tests": re.compile(r"pulmonary\s+function|stress\s+test|biopsy|endoscopy", re.IGNORECASE),
    "biopsies": re.compile(r"biopsy|tissue\s+sample", re.IGNORECASE),
    "pharmacokinetic_samples": re.compile(r"pharmacokinetic|\bpk\s+sample|drug\s+level", re.IGNORECASE),
    "vital_signs": re.compile(r"vital\s+signs|blood\s+pressure|heart\s+rate|temperature", re.IGNORECASE),
    "ecgs": re.compile(r"\becg\b|\bekg\b|electrocardiogram", re.IGNORECASE),
    "device_procedures": re.compile(r"device\s+implant|catheter|monitor\s+placement", re.IGNORECASE),
}
MAX_PROCEDURE_COUNT = 20

PROCEDURE_MINUTES = {
    "blood_draws": 15,
    "imaging_scans": 45,
    "physical_exams": 30,
    "questionnaires": 15,
    "specialized_tests": 60,
    "biopsies": 90,
    "pharmacokinetic_samples": 15,
    "vital_signs": 10,
    "ecgs": 15,
    "device_procedures": 120,
}
BASE_VISIT_MINUTES = 60

PATIENT_FREQUENCY_SCORES = {"daily": 90, "weekly": 70, "biweekly": 50, "monthly": 30, "quarterly": 15}
SITE_FREQUENCY_SCORES = {"daily": 80, "weekly": 60, "biweekly": 40, "monthly": 25, "quarterly": 15}
COMPLIANCE_FREQUENCY_RISK = {"daily": 30, "weekly": 20, "biweekly": 10, "monthly": 5, "quarterly": 0}

PATIENT_REQUIREMENT_SCORES = {"fasting": 10, "overnight_stay": 25, "sedation": 15, "isolation": 20}
SITE_REQUIREMENT_SCORES = {"fasting": 5, "overnight_stay": 20, "sedation": 15, "isolation": 25}
COMPLIANCE_REQUIREMENT_RISK = {"fasting": 5, "overnight_stay": 15, "sedation": 10}

# Observed dropout (%) by therapeutic area, blended with the burden estimate
AREA_DROPOUT_RATES = {"oncology": 28, "cardiology": 19, "neurology": 35}

BURDEN_BANDS = ((30, "Low"), (55, "Moderate"), (75, "High"))


class VisitBurdenCalculator:
    """Extracts visit factors from text and turns them into a burden analysis."""

    # (heading, terminator) pairs; a heading with no terminator after it is not a section
    SCREENING_SECTION = (re.compile(r"screening", re.IGNORECASE),
                         re.compile(r"baseline|treatment|randomization", re.IGNORECASE))
    TREATMENT_SECTION = (re.compile(r"treatment", re.IGNORECASE),
                         re.compile(r"follow|safety|endpoint", re.IGNORECASE))
    FOLLOW_UP_SECTION = (re.compile(r"follow[-\s]?up", re.IGNORECASE),
                         re.compile(r"endpoint|analysis|conclusion", re.IGNORECASE))

    def __init__(self):
        self.schedule = VisitScheduleExtractor()

    # -- extraction --------------------------------------------------------

    @staticmethod
    def _segment_count(section: Tuple[Pattern, Pattern], markers: str, text: str,
                       default: int, low: int, high: int) -> int:
        body = find_section(text, *section)
        if body is None:
            return default
        count = len(re.findall(markers, body, re.IGNORECASE))
        return max(low, min(high, count))

    @staticmethod
    def count_procedures(text: str) -> ProcedureCount:
        counts = {
            name: min(MAX_PROCEDURE_COUNT, len(pattern.findall(text)))
            for name, pattern in PROCEDURE_PATTERNS.items()
        }
        return ProcedureCount(**counts)

    @staticmethod
    def special_requirements(text: str) -> List[SpecialRequirement]:
        requirements = []
        if re.search(r"fasting|nil\s+by\s+mouth|\bnpo\b", text, re.IGNORECASE):
            requirements.append(SpecialRequirement(
                type="fasting",
                frequency=1,
                description="Fasting required before procedures",
                additional_minutes=60,
            ))
        if re.search(r"overnight\s+stay|inpatient|hospital\s+admission", text, re.IGNORECASE):
            requirements.append(SpecialRequirement(
                type="overnight_stay",
                frequency=max(1, len(re.findall(r"overnight|inpatient", text, re.IGNORECASE))),
                description="Overnight hospital stay required",
                additional_minutes=720,
            ))
        if re.search(r"sedation|anesthesia", text, re.IGNORECASE):
            requirements.append(SpecialRequirement(
                type="sedation",
                frequency=len(re.findall(r"sedation|anesthesia", text, re.IGNORECASE)),
                description="Sedation required for procedures",
                additional_minutes=120,
            ))
        if re.search(r"isolation|quarantine|infectious", text, re.IGNORECASE):
            requirements.append(SpecialRequirement(
                type="isolation",
                frequency=1,
                description="Isolation precautions required",
                additional_minutes=30,
            ))
        return requirements

    @staticmethod
    def geographic_factors(text: str) -> List[GeographicFactor]:
        factors = []
        if re.search(r"rural|remote\s+area", text, re.IGNORECASE):
            factors.append(GeographicFactor("rural", 1.5, "Rural patient population increases travel burden"))
        if re.search(r"limited\s+sites|few\s+centers|specialized\s+center", text, re.IGNORECASE):
            factors.append(GeographicFactor("limited_sites", 1.3, "Limited number of participating sites"))
        if not factors:
            factors.append(GeographicFactor("urban", 1.0, "Standard urban accessibility"))
        return factors

    def extract_visit_factors(self, text: Optional[str]) -> VisitFactors:
        text = text or ""
        return VisitFactors(
            total_visits=self.schedule.total_visits(text),
            visit_frequency=self.schedule.frequency(text),
            study_duration_months=self.schedule.duration_months(text),
            screening_visits=self._segment_count(self.SCREENING_SECTION, r"visit|day", text, 1, 1, 5),
            treatment_visits=self._segment_count(self.TREATMENT_SECTION, r"visit|week|cycle", text, 5, 1, 30),
            follow_up_visits=self._segment_count(self.FOLLOW_UP_SECTION, r"visit|month|contact", text, 2, 0, 10),
            procedures=self.count_procedures(text),
            special_requirements=self.special_requirements(text),
            geographic_factors=self.geographic_factors(text),
        )

    # -- scoring -----------------------------------------------------------

    @staticmethod
    def minutes_per_visit(factors: VisitFactors) -> int:
        visits = max(1, factors.total_visits)
        minutes = float(BASE_VISIT_MINUTES)
        for name, count in factors.procedures.as_dict().items():
            minutes += PROCEDURE_MINUTES[name] * count / visits
        for requirement in factors.special_requirements:
            minutes += requirement.additional_minutes / visits
        return round(minutes)

    @staticmethod
    def patient_burden(factors: VisitFactors) -> int:
        score = PATIENT_FREQUENCY_SCORES.get(factors.visit_frequency, 30)

        if factors.total_visits > 20:
            score += 30
        elif factors.total_visits > 15:
            score += 20
        elif factors.total_visits > 10:
            score += 10

        if factors.study_duration_months > 24:
            score += 15
        elif factors.study_duration_months > 12:
            score += 10

        procedures = factors.procedures.total()
        if procedures > 30:
            score += 25
        elif procedures > 20:
            score += 15
        elif procedures > 10:
            score += 10

        for requirement in factors.special_requirements:
            score += PATIENT_REQUIREMENT_SCORES.get(requirement.type, 0) * requirement.frequency

        for factor in factors.geographic_factors:
            if factor.type == "rural":
                score += 15
            elif factor.type == "limited_sites":
                score += 10

        return min(100, score)

    @staticmethod
    def site_burden(factors: VisitFactors) -> int:
        procedures = factors.procedures
        score = SITE_FREQUENCY_SCORES.get(factors.visit_frequency, 25)
        score += (procedures.biopsies + procedures.specialized_tests + procedures.device_procedures) * 5
        score += procedures.imaging_scans * 3
        score += procedures.pharmacokinetic_samples * 4
        for requirement in factors.special_requirements:
            score += SITE_REQUIREMENT_SCORES.get(requirement.type, 0) * requirement.frequency
        return min(100, score)

    @staticmethod
    def categorize_burden(patient_score: int, site_score: int) -> str:
        average = (patient_score + site_score) / 2
        for upper, name in BURDEN_BANDS:
            if average <= upper:
                return name
        return "Very High"

    @staticmethod
    def compliance_risk(factors: VisitFactors, patient_score: int) -> int:
        risk = patient_score * 0.6
        risk += COMPLIANCE_FREQUENCY_RISK.get(factors.visit_frequency, 5)
        if factors.study_duration_months > 24:
            risk += 15
        elif factors.study_duration_months > 12:
            risk += 10
        for requirement in factors.special_requirements:
            risk += COMPLIANCE_REQUIREMENT_RISK.get(requirement.type, 0)
        return min(95, round(risk))

    @staticmethod
    def dropout_rate(patient_score: int, therapeutic_area: Optional[str] = None) -> float:
        if patient_score > 70:
            rate = 47.0
        elif patient_score > 40:
            rate = 23.0
        else:
            rate = 11.0
        area_rate = AREA_DROPOUT_RATES.get(therapeutic_area)
        if area_rate is not None:
            rate = (rate + area_rate) / 2
        return rate

    @staticmethod
    def visit_details(factors: VisitFactors) -> List[VisitDetail]:
        details = [
            VisitDetail(
                name="Screening",
                timepoint="Day -28 to -1",
                procedures=["Physical exam", "Blood draw", "Vital signs", "ECG", "Medical history"],
                estimated_minutes=120,
                complexity="Moderate",
                burdensome_factors=["Tissue biopsy required"] if factors.procedures.biopsies > 0 else [],
            ),
            VisitDetail(
                name="Baseline/Randomization",
                timepoint="Day 1",
                procedures=["Physical exam", "Blood draw", "Questionnaires", "Randomization"],
                estimated_minutes=90,
                complexity="Moderate",
                burdensome_factors=[],
            ),
        ]

        for i in range(1, min(5, factors.treatment_visits) + 1):
            procedures = ["Vital signs", "Safety assessment"]
            if factors.procedures.blood_draws > 0:
                procedures.append("Blood draw")
            if factors.procedures.questionnaires > 0:
                procedures.append("Questionnaires")
            details.append(VisitDetail(
                name=f"Treatment Visit {i}",
                timepoint=f"Week {i * 2}",
                procedures=procedures,
                estimated_minutes=60,
                complexity="Simple",
                burdensome_factors=["Weekly frequency"] if factors.visit_frequency == "weekly" else [],
            ))

        if factors.follow_up_visits > 0:
            details.append(VisitDetail(
                name="End of Study",
                timepoint=f"Month {factors.study_duration_months}",
                procedures=["Physical exam", "Blood draw", "Safety follow-up", "Final assessments"],
                estimated_minutes=90,
                complexity="Moderate",
                burdensome_factors=[],
            ))
        return details

    @staticmethod
    def recommendations(factors: VisitFactors, patient_score: int) -> List[BurdenRecommendation]:
        recommendations = []
        if factors.visit_frequency == "weekly" and factors.total_visits > 12:
            recommendations.append(BurdenRecommendation(
                "reduce_frequency",
                "Consider reducing weekly visits to biweekly after initial treatment period",
                20, "High"))
        if factors.total_visits > 15:
            recommendations.append(BurdenRecommendation(
                "combine_visits",
                "Evaluate if some visits can be combined to reduce total number",
                15, "Medium"))
        if factors.procedures.total() > 25:
            recommendations.append(BurdenRecommendation(
                "split_procedures",
                "Consider splitting high-procedure visits to reduce per-visit burden",
                12, "Medium"))
        if factors.procedures.vital_signs > 5 or factors.procedures.questionnaires > 8:
            recommendations.append(BurdenRecommendation(
                "remote_monitoring",
                "Implement remote monitoring for routine assessments between visits",
                25, "High"))
        if patient_score > 70:
            recommendations.append(BurdenRecommendation(
                "optimize_schedule",
                "Optimize visit scheduling to reduce patient travel and waiting time",
                10, "Medium"))
        return recommendations

    def calculate_visit_burden(self, factors: VisitFactors,
                               therapeutic_area: Optional[str] = None) -> VisitBurdenAnalysis:
        patient_score = self.patient_burden(factors)
        site_score = self.site_burden(factors)
        minutes = self.minutes_per_visit(factors)
        dropout = self.dropout_rate(patient_score, therapeutic_area)

        logger.debug(f"Visit burden: patient {patient_score}, site {site_score}, "
                     f"{minutes} min/visit over {factors.total_visits} visits")

        return VisitBurdenAnalysis(
            total_visits=factors.total_visits,
            minutes_per_visit=minutes,
            total_study_hours=round(factors.total_visits * minutes / 60),
            patient_burden_score=patient_score,
            site_burden_score=site_score,
            overall_burden=self.categorize_burden(patient_score, site_score),
            compliance_risk=self.compliance_risk(factors, patient_score),
            predicted_dropout_rate=dropout,
            retention_rate=100 - dropout,
            visit_details=self.visit_details(factors),
            recommendations=self.recommendations(factors, patient_score),
        )

    def analyze(self, text: Optional[str], therapeutic_area: Optional[str] = None) -> VisitBurdenAnalysis:
        return self.calculate_visit_burden(self.extract_visit_factors(text), therapeutic_area)


def calculate_visit_burden(text: Optional[str], therapeutic_area: Optional[str] = None) -> VisitBurdenAnalysis:
    """Score the patient and site burden of the visit schedule in ``text``."""
    return VisitBurdenCalculator().analyze(text, therapeutic_area)
