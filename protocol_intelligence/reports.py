#!/usr/bin/env python3
"""
Report generation for protocol analyses and collected corpora.

This module handles the generation of formatted reports and summaries.
"""

from datetime import datetime
from typing import Dict, List

from .benchmarking import METRIC_NAMES, comparison_table
from .corpus import MIN_COHORT_SIZE
from .models import ProtocolAnalysis, ProtocolRecord

_BENCHMARK_TABLE_METRICS = (
    ("complexity_score", "Complexity"),
    ("sample_size", "Enrollment"),
    ("eligibility_criteria", "Eligibility criteria"),
    ("study_duration_months", "Duration (months)"),
)


def _fmt(value) -> str:
    if isinstance(value, float):
        return f"{value:,.1f}".rstrip("0").rstrip(".") if value != int(value) else f"{int(value):,}"
    return f"{value:,}" if isinstance(value, int) else str(value)


def generate_analysis_report(analysis: ProtocolAnalysis) -> str:
    """Generate a formatted plain-text report of one protocol analysis."""
    features = analysis.features
    complexity = analysis.complexity
    enrollment = analysis.enrollment
    burden = analysis.visit_burden
    benchmark = analysis.benchmark
    summary = analysis.recommendations

    report = []
    report.append("=" * 80)
    report.append("PROTOCOL INTELLIGENCE REPORT")
    report.append("=" * 80)
    report.append(f"\nPhase: {analysis.phase}")
    report.append(f"Therapeutic Area: {benchmark.therapeutic_area}")
    report.append(f"Sample Size: {features.sample_size}")
    report.append(f"Eligibility Criteria: {features.inclusion_criteria} inclusion, "
                  f"{features.exclusion_criteria} exclusion")
    report.append(f"Protocol Health: {summary.protocol_health}/100")
    report.append(f"Report generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    report.append("\n" + "-" * 80)
    report.append("COMPLEXITY")
    report.append("-" * 80)
    report.append(f"Overall Score: {complexity.overall}/100 ({complexity.category})")
    report.append(f"Percentile: {complexity.percentile:.0f}")
    report.append(f"Confidence: {complexity.confidence}%")
    for name, value in complexity.breakdown.items():
        report.append(f"   {name.capitalize():<12} {value:>3}")
    for item in complexity.recommendations:
        report.append(f"   - {item}")

    report.append("\n" + "-" * 80)
    report.append("ENROLLMENT FEASIBILITY")
    report.append("-" * 80)
    report.append(f"Estimated Duration: {enrollment.estimated_months} months ({enrollment.difficulty})")
    report.append(f"Difficulty Multiplier: x{enrollment.difficulty_multiplier:.2f}")
    report.append(f"Screen Failure Rate: {enrollment.screen_failure_rate}%")
    report.append(f"Recommended Sites: {enrollment.recommended_sites}")
    for name, multiplier in enrollment.applied_factors:
        report.append(f"   x{multiplier:<4} {name}")
    for risk in enrollment.risk_factors:
        report.append(f"   [{risk.impact}] {risk.factor}: {risk.description}")
        report.append(f"          Mitigation: {risk.mitigation}")

    report.append("\n" + "-" * 80)
    report.append("VISIT BURDEN")
    report.append("-" * 80)
    report.append(f"Overall Burden: {burden.overall_burden}")
    report.append(f"Patient / Site Burden: {burden.patient_burden_score} / {burden.site_burden_score}")
    report.append(f"Visits: {burden.total_visits} x {burden.minutes_per_visit} min "
                  f"({burden.total_study_hours} hours in total)")
    report.append(f"Compliance Risk: {burden.compliance_risk}%")
    report.append(f"Predicted Dropout: {burden.predicted_dropout_rate:.1f}% "
                  f"(retention {burden.retention_rate:.1f}%)")
    for visit in burden.visit_details:
        report.append(f"   {visit.name:<24} {visit.timepoint:<16} {visit.estimated_minutes:>4} min")
    for item in burden.recommendations:
        report.append(f"   [{item.priority}] {item.description} (-{item.expected_reduction}%)")

    report.append("\n" + "-" * 80)
    report.append("INDUSTRY BENCHMARKS")
    report.append("-" * 80)
    report.append(f"Benchmark Score: {benchmark.overall_score}/100")
    if benchmark.metrics:
        report.append(f"\n{'Metric':<28} {'Protocol':>10} {'Median':>10}  Comparison")
        for name, value, median, label in comparison_table(benchmark):
            report.append(f"{name:<28} {_fmt(value):>10} {_fmt(median):>10}  {label}")
    else:
        report.append("No reference cohort is large enough for this protocol.")
    for metric in benchmark.metrics:
        low, high = metric.industry_range
        report.append(f"\n{METRIC_NAMES.get(metric.metric, metric.metric)}")
        report.append(f"   Percentile: {metric.percentile:.0f} ({metric.category}), "
                      f"range {_fmt(low)}-{_fmt(high)}, cohort {metric.cohort} (n={metric.cohort_size})")
        report.append(f"   {metric.insight}")
    for outlier in benchmark.outliers:
        report.append(f"\n[{outlier.severity}] {outlier.message}")
        report.append(f"   {outlier.recommendation} ({outlier.prevalence})")
    for line in benchmark.industry_context:
        report.append(f"   * {line}")

    report.append("\n" + "-" * 80)
    report.append("RECOMMENDATIONS")
    report.append("-" * 80)
    report.append(f"Estimated time to optimize: {summary.estimated_time_to_optimize}")
    for i, rec in enumerate(summary.top_recommendations, 1):
        impact = rec.expected_impact
        report.append(f"\n{i}. [{rec.priority}] {rec.title}")
        report.append(f"   {rec.description}")
        report.append(f"   {impact.metric}: {_fmt(impact.current_value)} -> {_fmt(impact.projected_value)} "
                      f"({impact.improvement})")
        report.append(f"   Effort: {rec.effort}, {rec.time_to_implement}")
        if rec.industry_example:
            report.append(f"   Example: {rec.industry_example}")
    if analysis.quick_fixes:
        report.append("\nQuick fixes:")
        for fix in analysis.quick_fixes:
            report.append(f"   - {fix.description}")

    report.append("=" * 80)
    return "\n".join(report)


def _distribution_table(title: str, distribution: Dict[str, int], total: int) -> List[str]:
    lines = [f"## {title}", "", "| Value | Protocols | Share |", "|---|---:|---:|"]
    for name, count in distribution.items():
        share = count / total * 100 if total else 0
        lines.append(f"| {name} | {count:,} | {share:.1f}% |")
    lines.append("")
    return lines


def _stats_line(label: str, stats: Dict) -> str:
    if not stats.get("count"):
        return f"- **{label}**: no data"
    return (f"- **{label}**: median {_fmt(stats['median'])}, "
            f"p25-p75 {_fmt(stats['p25'])}-{_fmt(stats['p75'])}, "
            f"range {_fmt(stats['min'])}-{_fmt(stats['max'])} (n={stats['count']:,})")


def generate_corpus_summary(records: List[ProtocolRecord], analysis: Dict) -> str:
    """Generate a markdown summary of a collected reference corpus."""
    total = len(records)
    lines = [
        "# Reference Corpus Summary",
        "",
        f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        f"- **Total protocols**: {total:,}",
    ]
    collection = analysis.get("collection")
    if collection:
        lines.append(f"- **Studies examined**: {collection['studies_examined']:,}")
        lines.append(f"- **Pages processed**: {collection['pages_processed']:,}")
        lines.append(f"- **Protocol hit rate**: {collection['protocol_hit_rate']}%")
    lines.append("")

    lines += _distribution_table("Phase distribution", analysis.get("phase_distribution", {}), total)
    lines += _distribution_table("Therapeutic area distribution",
                                 analysis.get("therapeutic_area_distribution", {}), total)
    if analysis.get("enrollment_distribution"):
        lines += _distribution_table("Enrollment size", analysis["enrollment_distribution"], total)

    complexity = analysis.get("complexity", {})
    lines += ["## Statistics", ""]
    lines.append(_stats_line("Complexity score", complexity.get("scores", {})))
    lines.append(_stats_line("Enrollment", analysis.get("enrollment", {})))
    lines.append(_stats_line("Eligibility criteria", analysis.get("eligibility_criteria", {})))
    lines.append(_stats_line("Study duration (months)", analysis.get("study_duration_months", {})))
    lines.append("")
    if complexity.get("categories"):
        lines += _distribution_table("Complexity categories", complexity["categories"], total)

    for title, key in (("Phase benchmarks", "phase_benchmarks"),
                       ("Phase and therapeutic area benchmarks", "phase_area_benchmarks")):
        cohorts = analysis.get(key, {})
        lines += [f"## {title}", ""]
        if not cohorts:
            lines += ["No cohort reached the minimum size.", ""]
            continue
        header = "| Cohort | n | " + " | ".join(f"{label} median" for _, label in _BENCHMARK_TABLE_METRICS) + " |"
        lines += [header, "|---|---:|" + "---:|" * len(_BENCHMARK_TABLE_METRICS)]
        for name, cohort in cohorts.items():
            cells = []
            for metric, _ in _BENCHMARK_TABLE_METRICS:
                stats = cohort.get("metrics", {}).get(metric, {})
                cells.append(_fmt(stats["median"]) if stats.get("count") else "-")
            lines.append(f"| {name.replace('|', ' / ')} | {cohort['count']:,} | " + " | ".join(cells) + " |")
        lines.append("")

    min_cohort_size = analysis.get("min_cohort_size", MIN_COHORT_SIZE)
    lines += [
        "## Data source",
        "",
        "ClinicalTrials.gov API v2. Complexity scores are computed from registry eligibility, "
        f"endpoint and design fields; cohorts with fewer than {min_cohort_size} protocols are not reported.",
        "",
    ]
    return "\n".join(lines)
