# tests/test_reports.py
"""Tests for protocol_intelligence/reports.py - text and markdown reports."""

from protocol_intelligence import analyze_protocol
from protocol_intelligence.corpus_collector import analyze_corpus, build_protocol_record
from protocol_intelligence.reports import generate_analysis_report, generate_corpus_summary

from conftest import make_study


class TestAnalysisReport:
    def test_sections(self, sample_protocol):
        report = generate_analysis_report(analyze_protocol(sample_protocol))
        assert report.startswith("=" * 80)
        for heading in ("PROTOCOL INTELLIGENCE REPORT", "COMPLEXITY", "ENROLLMENT FEASIBILITY",
                        "VISIT BURDEN", "INDUSTRY BENCHMARKS", "RECOMMENDATIONS"):
            assert heading in report
        assert "Overall Score: 73/100 (Complex)" in report
        assert "Therapeutic Area: oncology" in report

    def test_benchmark_comparison_table(self, sample_protocol):
        report = generate_analysis_report(analyze_protocol(sample_protocol))
        rows = [line.split() for line in report.splitlines() if line.startswith("Sample Size ")]
        assert rows == [["Sample", "Size", "150", "54", "Much", "Higher"]]

    def test_quick_fixes_listed(self, sample_protocol):
        text = sample_protocol + "\nPatients must have documented disease progression."
        report = generate_analysis_report(analyze_protocol(text))
        assert "Quick fixes:" in report


class TestCorpusSummary:
    def test_summary_tables(self):
        records = [build_protocol_record(make_study(f"NCT{i:08d}")) for i in range(10)]
        summary = generate_corpus_summary(records, analyze_corpus(records))
        assert summary.startswith("# Reference Corpus Summary")
        assert "- **Total protocols**: 10" in summary
        assert "| Phase 2 | 10 | 100.0% |" in summary
        assert "| Phase 2 / oncology | 10 |" in summary
        assert "| 101-500 | 10 | 100.0% |" in summary
        assert "fewer than 10 protocols" in summary

    def test_small_corpus_has_no_cohorts(self):
        records = [build_protocol_record(make_study("NCT00000001"))]
        summary = generate_corpus_summary(records, analyze_corpus(records))
        assert "No cohort reached the minimum size." in summary
