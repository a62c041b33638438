#!/usr/bin/env python3
"""
Industry Benchmarking

Positions a protocol's metrics within the reference corpus. Each metric is
compared against the narrowest cohort with enough protocols to be
meaningful: phase and therapeutic area, then phase alone, then the phase's
aggregate statistics. Metrics without such a cohort are left out rather
than reported against a handful of studies.
"""

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from .corpus import METRICS, MIN_COHORT_SIZE, ReferenceCorpus
from .extraction import cohort_phase, normalize_phase
from .models import Benchmark, BenchmarkMetric, OutlierAlert
from .stats import knot_percentile_rank, percentile, percentile_rank

logger = logging.getLogger(__name__)

METRIC_NAMES = {
    "sample_size": "Sample Size",
    "total_visits": "Total Visits",
    "eligibility_criteria": "Eligibility Criteria",
    "study_duration_months": "Study Duration (months)",
    "primary_endpoints": "Primary Endpoints",
    "screen_failure_rate": "Screen Failure Rate (%)",
    "complexity_score": "Protocol Complexity Score",
}
CATEGORY_BANDS = ((90, "Excellent"), (75, "Good"), (50, "Average"), (25, "Below Average"))
CATEGORY_SCORES = {"Excellent": 90, "Good": 75, "Average": 60, "Below Average": 40, "Poor": 20}
# Metrics where a low percentile is the favourable position
INVERTED_METRICS = ("screen_failure_rate",)

AREA_CONTEXT = {
    "oncology": "Oncology trials typically have 20% higher complexity due to biomarker requirements",
    "neurology": "Neurology studies often require longer follow-up periods and specialized assessments",
    "cardiology": "Cardiovascular trials frequently include imaging endpoints and MACE adjudication",
    "infectious_disease": "ID trials often have shorter duration but intensive early monitoring",
    "endocrinology": "Endocrine studies typically require extensive metabolic monitoring",
    "psychiatry": "Psychiatric trials require specialized rating scales and safety monitoring",
}


@dataclass
class CohortPosition:
    """Where a value falls within the cohort chosen for it."""
    label: str
    size: int
    percentile: float
    median: float
    low: float
    high: float
    p90: float


def categorize_percentile(value: float) -> str:
    for lower, name in CATEGORY_BANDS:
        if value >= lower:
            return name
    return "Poor"


def compare(value: float, median: float) -> str:
    """Comparative label for ``value`` against a cohort median."""
    if not median:
        return "Similar" if not value else "Much Higher"
    ratio = value / median
    if ratio < 0.7:
        return "Much Lower"
    if ratio < 0.85:
        return "Lower"
    if ratio <= 1.15:
        return "Similar"
    if ratio <= 1.4:
        return "Higher"
    return "Much Higher"


def _insight(metric: str, value: float, position: CohortPosition, phase: str) -> str:
    median, p90 = position.median, position.p90
    if metric == "sample_size":
        if value < median * 0.5:
            return f"Sample size is unusually small for {phase} studies. Consider power analysis validation."
        if value > median * 3:
            return "Large sample size may indicate overpowered study or multiple objectives."
        return f"Sample size is typical for {phase} studies in this therapeutic area."
    if metric == "total_visits":
        if value > p90:
            extra = round((value / median - 1) * 100) if median else 100
            return f"Visit schedule is intensive - {extra}% more visits than the median {phase} study."
        if value < median * 0.6:
            return "Minimal visit schedule may impact data quality and safety monitoring."
        return f"Visit frequency is appropriate for {phase} objectives."
    if metric == "eligibility_criteria":
        if value > p90:
            share = max(1, round(100 - position.percentile))
            return (f"Eligibility criteria are very restrictive - only {share}% of {phase} "
                    f"studies have this many criteria.")
        if value < median * 0.5:
            return "Broad eligibility criteria may improve enrollment but reduce study population homogeneity."
        return f"Eligibility criteria complexity is standard for {phase} studies."
    if metric == "study_duration_months":
        if value > p90:
            return "Extended study duration may challenge patient retention and site engagement."
        if value < median * 0.6:
            return "Short study duration may limit ability to assess long-term safety and efficacy."
        return f"Study duration aligns with {phase} study standards."
    if metric == "screen_failure_rate":
        if value > p90:
            return "High screen failure rate indicates very restrictive eligibility - expect enrollment challenges."
        if value < median * 0.5:
            return "Low screen failure rate suggests broad eligibility criteria - validate target population."
        return f"Screen failure rate is within expected range for {phase} studies."
    if metric == "complexity_score":
        if value >= 100:
            return "Maximum complexity score indicates highly sophisticated protocol design."
        if value > median * 1.2:
            return (f"Protocol complexity is above typical for {phase} studies - "
                    f"consider streamlining where possible.")
        if value < median * 0.8:
            return "Protocol complexity is below average - ensure all necessary elements are included."
        return f"Protocol complexity aligns with {phase} study standards."
    label = compare(value, median).lower()
    return f"{METRIC_NAMES.get(metric, metric)} is {label} than the {phase} median."


class BenchmarkingService:
    """Benchmarks protocol metrics against a ReferenceCorpus."""

    def __init__(self, corpus: ReferenceCorpus, min_cohort_size: int = MIN_COHORT_SIZE,
                 upper_outlier: float = 95, lower_outlier: float = 5,
                 critical_criteria: int = 25):
        self.corpus = corpus
        self.min_cohort_size = min_cohort_size
        self.upper_outlier = upper_outlier
        self.lower_outlier = lower_outlier
        self.critical_criteria = critical_criteria

    def _from_sample(self, label: str, sample: List[float], value: float) -> CohortPosition:
        return CohortPosition(
            label=label,
            size=len(sample),
            percentile=percentile_rank(sample, value),
            median=percentile(sample, 50),
            low=sample[0],
            high=sample[-1],
            p90=percentile(sample, 90),
        )

    def position(self, metric: str, value: float, phase: str,
                 area: Optional[str] = None) -> Optional[CohortPosition]:
        """Locate ``value`` in the narrowest cohort holding enough protocols."""
        if area:
            sample = self.corpus.cohort_sample(metric, phase, area)
            if len(sample) >= self.min_cohort_size:
                return self._from_sample(f"{phase} / {area}", sample, value)

        sample = self.corpus.cohort_sample(metric, phase)
        if len(sample) >= self.min_cohort_size:
            return self._from_sample(phase, sample, value)

        stats = self.corpus.cohort_stats(metric, phase)
        if stats and stats.get("count", 0) >= self.min_cohort_size:
            rank = knot_percentile_rank(stats, value)
            if rank is not None:
                return CohortPosition(
                    label=phase,
                    size=int(stats["count"]),
                    percentile=rank,
                    median=stats.get("median", 0),
                    low=stats.get("min", 0),
                    high=stats.get("max", 0),
                    p90=stats.get("p90", stats.get("max", 0)),
                )
        return None

    def _outliers(self, metric: str, value: float, position: CohortPosition,
                  phase: str) -> List[OutlierAlert]:
        name = METRIC_NAMES.get(metric, metric)
        alerts = []
        if metric == "eligibility_criteria" and value > self.critical_criteria:
            alerts.append(OutlierAlert(
                metric=name,
                severity="Critical",
                message=f"Extremely restrictive eligibility criteria ({value:g} total)",
                recommendation="Prioritize criteria review - each criterion should be essential",
                prevalence="Less than 2% of studies have this many criteria",
            ))
        if position.percentile >= self.upper_outlier:
            alerts.append(OutlierAlert(
                metric=name,
                severity="Warning",
                message=f"{name} is in the top {100 - self.upper_outlier:g}% of all {phase} studies",
                recommendation="Review if this complexity is necessary for study objectives",
                prevalence=f"Only {100 - self.upper_outlier:g}% of {phase} studies exceed this level",
            ))
        elif position.percentile <= self.lower_outlier:
            alerts.append(OutlierAlert(
                metric=name,
                severity="Info",
                message=f"{name} is unusually low compared to similar studies",
                recommendation="Validate adequacy for regulatory and scientific requirements",
                prevalence=f"Only {self.lower_outlier:g}% of {phase} studies are this minimal",
            ))
        return alerts

    def industry_context(self, phase: str, area: Optional[str],
                         metrics: List[BenchmarkMetric]) -> List[str]:
        context = [f"Based on analysis of {self.corpus.total_protocols:,} protocols from ClinicalTrials.gov"]
        phase_count = self.corpus.phase_counts().get(phase)
        if phase_count:
            context.append(f"{phase} cohort: {phase_count:,} protocols")

        if metrics:
            average = sum(m.percentile for m in metrics) / len(metrics)
            if average > 80:
                context.append(f"This protocol is more complex than 80% of similar {phase} studies")
            elif average > 60:
                context.append(f"Protocol complexity is above average for {phase} studies")
            elif average > 40:
                context.append(f"Protocol design is typical for {phase} studies")
            else:
                context.append(f"This is a relatively streamlined {phase} protocol design")

        if area in AREA_CONTEXT:
            context.append(AREA_CONTEXT[area])
        return context

    def benchmark(self, metrics: Mapping[str, Optional[float]], phase: str,
                  area: Optional[str] = None) -> Benchmark:
        phase_key = cohort_phase(normalize_phase(phase))
        results: List[BenchmarkMetric] = []
        outliers: List[OutlierAlert] = []

        for metric in METRICS:
            value = metrics.get(metric)
            if value is None:
                continue
            position = self.position(metric, value, phase_key, area)
            if position is None:
                logger.debug(f"No cohort of {self.min_cohort_size}+ protocols for {metric} in {phase_key}")
                continue

            rank = round(position.percentile, 1)
            category_basis = 100 - rank if metric in INVERTED_METRICS else rank
            results.append(BenchmarkMetric(
                metric=metric,
                protocol_value=value,
                industry_median=position.median,
                industry_range=(position.low, position.high),
                percentile=rank,
                category=categorize_percentile(category_basis),
                insight=_insight(metric, value, position, phase_key),
                cohort=position.label,
                cohort_size=position.size,
            ))
            outliers.extend(self._outliers(metric, value, position, phase_key))

        if results:
            overall = round(sum(CATEGORY_SCORES[m.category] for m in results) / len(results))
        else:
            overall = 50

        return Benchmark(
            phase=phase_key,
            therapeutic_area=area or "other",
            metrics=results,
            outliers=outliers,
            overall_score=overall,
            industry_context=self.industry_context(phase_key, area, results),
        )


_default_corpus: Optional[ReferenceCorpus] = None


def default_corpus() -> ReferenceCorpus:
    """Bundled corpus, loaded once."""
    global _default_corpus
    if _default_corpus is None:
        _default_corpus = ReferenceCorpus.load_default()
    return _default_corpus


def benchmark(metrics: Mapping[str, Optional[float]], phase: str, area: Optional[str] = None,
              corpus: Optional[ReferenceCorpus] = None) -> Benchmark:
    """Benchmark protocol metrics against ``corpus`` or the bundled reference corpus."""
    return BenchmarkingService(corpus or default_corpus()).benchmark(metrics, phase, area)


def comparison_table(result: Benchmark) -> List[Tuple[str, float, float, str]]:
    """(display name, protocol value, median, comparative label) per metric."""
    return [
        (METRIC_NAMES.get(m.metric, m.metric), m.protocol_value, m.industry_median,
         compare(m.protocol_value, m.industry_median))
        for m in result.metrics
    ]
