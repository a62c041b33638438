#!/usr/bin/env python3
"""
Data models for the protocol intelligence engine.

This module contains the dataclasses passed between the extractor, the
scorers, the benchmarking service and the corpus collector.
"""

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Tuple


GENDERS = ("male", "female", "both")
PREVALENCE_CLASSES = ("common", "uncommon", "rare", "very_rare")
THERAPEUTIC_AREAS = (
    "oncology",
    "cardiology",
    "neurology",
    "infectious_disease",
    "endocrinology",
    "psychiatry",
    "other",
)
VISIT_FREQUENCIES = ("daily", "weekly", "biweekly", "monthly", "quarterly")
COMPETITION_LEVELS = ("high", "medium", "low")
COMPLEXITY_CATEGORIES = ("Simple", "Moderate", "Complex", "Highly Complex")
DIFFICULTY_TIERS = ("Easy", "Moderate", "Challenging", "Difficult")
PERCENTILE_CATEGORIES = ("Excellent", "Good", "Average", "Below Average", "Poor")
BURDEN_CATEGORIES = ("Low", "Moderate", "High", "Very High")
PHASES = (
    "Early Phase 1",
    "Phase 1",
    "Phase 2",
    "Phase 3",
    "Phase 4",
    "Non-Applicable",
    "Unknown",
)


@dataclass(frozen=True)
class ProtocolFeatures:
    """Structured facts extracted from one protocol's free text."""
    sample_size: int = 100
    inclusion_criteria: int = 5
    exclusion_criteria: int = 3
    age_range: Optional[Tuple[int, int]] = None
    gender_restriction: str = "both"
    disease_prevalence: str = "uncommon"
    therapeutic_area: str = "other"
    washout_days: int = 0
    geographic_restriction: bool = False
    biomarker_required: bool = False
    prior_treatment_required: bool = False
    comorbidity_restrictions: int = 0
    invasive_procedures: bool = False
    inpatient_stays: bool = False
    visit_frequency: str = "monthly"
    study_duration_months: int = 12
    competing_trials: str = "low"
    # complexity sub-counts
    primary_endpoints: int = 1
    secondary_endpoints: int = 0
    exploratory_endpoints: int = 0
    randomized: bool = False
    masked: bool = False
    phases: Tuple[str, ...] = ()
    total_visits: int = 1
    procedures_per_visit: int = 1
    lab_requirements: int = 0
    imaging_requirements: int = 0
    conditional_statements: int = 0
    study_arms: int = 1
    cohorts: int = 1
    adaptive_design: bool = False
    interim_analyses: int = 0
    word_count: int = 0
    sections_found: Tuple[str, ...] = ()

    @property
    def total_criteria(self) -> int:
        return self.inclusion_criteria + self.exclusion_criteria

    @property
    def age_span(self) -> Optional[int]:
        if self.age_range is None:
            return None
        return self.age_range[1] - self.age_range[0]


@dataclass
class ComplexityScore:
    """Complexity of a protocol design on a 0-100 scale."""
    overall: int
    category: str
    breakdown: Dict[str, int]
    contributions: Dict[str, int]
    percentile: float
    confidence: int
    recommendations: List[str] = field(default_factory=list)


@dataclass
class EnrollmentRisk:
    factor: str
    impact: str
    description: str
    mitigation: str


@dataclass
class EnrollmentFeasibility:
    """Predicted enrollment timeline and the factors behind it."""
    estimated_months: int
    baseline_months: float
    difficulty_multiplier: float
    applied_factors: List[Tuple[str, float]]
    screen_failure_rate: int
    recommended_sites: int
    difficulty: str
    risk_factors: List[EnrollmentRisk]
    recommendations: List[str]
    confidence: int


@dataclass
class ProcedureCount:
    blood_draws: int = 0
    imaging_scans: int = 0
    physical_exams: int = 0
    questionnaires: int = 0
    specialized_tests: int = 0
    biopsies: int = 0
    pharmacokinetic_samples: int = 0
    vital_signs: int = 0
    ecgs: int = 0
    device_procedures: int = 0

    def total(self) -> int:
        return sum(self.as_dict().values())

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class SpecialRequirement:
    type: str
    frequency: int
    description: str
    additional_minutes: int


@dataclass
class GeographicFactor:
    type: str
    impact: float
    description: str


@dataclass
class VisitFactors:
    """Visit schedule facts used by the burden calculator."""
    total_visits: int
    visit_frequency: str
    study_duration_months: int
    screening_visits: int
    treatment_visits: int
    follow_up_visits: int
    procedures: ProcedureCount
    special_requirements: List[SpecialRequirement]
    geographic_factors: List[GeographicFactor]


@dataclass
class VisitDetail:
    name: str
    timepoint: str
    procedures: List[str]
    estimated_minutes: int
    complexity: str
    burdensome_factors: List[str]


@dataclass
class BurdenRecommendation:
    type: str
    description: str
    expected_reduction: int
    priority: str


@dataclass
class VisitBurdenAnalysis:
    """Patient and site burden of a visit schedule."""
    total_visits: int
    minutes_per_visit: int
    total_study_hours: int
    patient_burden_score: int
    site_burden_score: int
    overall_burden: str
    compliance_risk: int
    predicted_dropout_rate: float
    retention_rate: float
    visit_details: List[VisitDetail]
    recommendations: List[BurdenRecommendation]


@dataclass
class BenchmarkMetric:
    """One protocol metric positioned within its reference cohort."""
    metric: str
    protocol_value: float
    industry_median: float
    industry_range: Tuple[float, float]
    percentile: float
    category: str
    insight: str
    cohort: str
    cohort_size: int


@dataclass
class OutlierAlert:
    metric: str
    severity: str
    message: str
    recommendation: str
    prevalence: str


@dataclass
class Benchmark:
    phase: str
    therapeutic_area: str
    metrics: List[BenchmarkMetric]
    outliers: List[OutlierAlert]
    overall_score: int
    industry_context: List[str]

    def get(self, metric: str) -> Optional[BenchmarkMetric]:
        for item in self.metrics:
            if item.metric == metric:
                return item
        return None


@dataclass
class ExpectedImpact:
    metric: str
    current_value: float
    projected_value: float
    improvement: str


@dataclass
class Recommendation:
    """A prioritized protocol optimization suggestion."""
    id: str
    priority: str
    category: str
    title: str
    description: str
    expected_impact: ExpectedImpact
    effort: str
    time_to_implement: str
    industry_example: Optional[str] = None
    one_click_fix: bool = False


@dataclass
class RecommendationSummary:
    protocol_health: int
    top_recommendations: List[Recommendation]
    quick_wins: List[Recommendation]
    strategic_improvements: List[Recommendation]
    total_potential_improvement: float
    estimated_time_to_optimize: str


@dataclass
class ProtocolAnalysis:
    """Everything the engine derives from one protocol text."""
    phase: str
    features: ProtocolFeatures
    complexity: ComplexityScore
    enrollment: EnrollmentFeasibility
    visit_burden: VisitBurdenAnalysis
    benchmark: Benchmark
    recommendations: RecommendationSummary
    quick_fixes: List[Recommendation] = field(default_factory=list)


@dataclass
class ProtocolRecord:
    """Represents one registry study collected into the reference corpus."""
    nct_id: str
    brief_title: str
    official_title: str
    phases: List[str]
    phase: str
    study_type: str
    allocation: str
    intervention_model: str
    masking: str
    enrollment_count: int
    enrollment_type: str
    start_date: str
    completion_date: str
    study_duration_months: Optional[float]
    inclusion_criteria: int
    exclusion_criteria: int
    primary_endpoints: int
    secondary_endpoints: int
    other_endpoints: int
    complexity_score: int
    complexity_category: str
    therapeutic_area: str
    protocol_documents: List[Dict] = field(default_factory=list)
    collection_date: str = ""
    data_source: str = "ClinicalTrials.gov API v2"

    @property
    def eligibility_criteria(self) -> int:
        return self.inclusion_criteria + self.exclusion_criteria
