#!/usr/bin/env python3
"""
Main script for protocol analysis

Scores one protocol text file, or a CSV/Excel batch of protocols, for
complexity, enrollment feasibility and visit burden, and benchmarks each
against the reference corpus.
"""

import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

import config
from data_loader import load_protocol_batch, load_protocol_text
from logging_setup import setup_logging
from protocol_intelligence import ProtocolAnalyzer, ReferenceCorpus, generate_analysis_report

logger = logging.getLogger(__name__)


def load_corpus(corpus_path: str) -> ReferenceCorpus:
    if corpus_path:
        logger.info(f"Loading reference corpus from {corpus_path}")
        return ReferenceCorpus.from_json(corpus_path)
    return ReferenceCorpus.load_default()


def analyze_batch(analyzer: ProtocolAnalyzer, batch_file: str, output_dir: Path) -> int:
    """Analyze every row of a batch file; returns the number of reports written."""
    df = load_protocol_batch(batch_file)
    if df is None:
        print(f"❌ Could not load protocol batch from {batch_file}")
        return 0

    output_dir.mkdir(parents=True, exist_ok=True)
    summary = []
    for _, row in df.iterrows():
        protocol_id = row["protocol_id"]
        phase = row["phase"] if isinstance(row["phase"], str) and row["phase"].strip() else None
        area = row["therapeutic_area"] if isinstance(row["therapeutic_area"], str) and row["therapeutic_area"].strip() else None
        logger.info(f"Analyzing protocol {protocol_id}")

        analysis = analyzer.analyze(row["protocol_text"], phase, area)
        with open(output_dir / f"{protocol_id}_analysis.json", "w", encoding="utf-8") as f:
            json.dump(asdict(analysis), f, indent=2, ensure_ascii=False)
        with open(output_dir / f"{protocol_id}_report.txt", "w", encoding="utf-8") as f:
            f.write(generate_analysis_report(analysis))

        summary.append({
            "protocol_id": protocol_id,
            "phase": analysis.phase,
            "therapeutic_area": analysis.benchmark.therapeutic_area,
            "complexity_score": analysis.complexity.overall,
            "complexity_category": analysis.complexity.category,
            "enrollment_months": analysis.enrollment.estimated_months,
            "visit_burden": analysis.visit_burden.overall_burden,
            "protocol_health": analysis.recommendations.protocol_health,
        })

    with open(output_dir / "batch_summary.json", "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)

    print("\n" + "=" * 80)
    print("BATCH ANALYSIS SUMMARY")
    print("=" * 80)
    for item in summary:
        print(f"{item['protocol_id']:<20} {item['phase']:<16} complexity {item['complexity_score']:>3} "
              f"({item['complexity_category']}), {item['enrollment_months']} months, "
              f"burden {item['visit_burden']}")
    print(f"\nReports saved to: {output_dir}")
    return len(summary)


def main():
    """Main function to run protocol analysis from the command line."""
    import argparse

    parser = argparse.ArgumentParser(description="Analyze clinical trial protocol text.")
    parser.add_argument("protocol", nargs="?", help="Path to a plain-text protocol file")
    parser.add_argument("--batch", help="CSV or Excel file with protocol_id and protocol_text columns")
    parser.add_argument("--phase", help="Study phase, e.g. 'Phase 2' (detected from the text if omitted)")
    parser.add_argument("--area", help="Therapeutic area, e.g. 'oncology' (classified from the text if omitted)")
    parser.add_argument("--corpus", default=config.REFERENCE_CORPUS_PATH,
                        help="Reference corpus JSON (defaults to the bundled benchmarks)")
    parser.add_argument("--output", help="Write the full analysis as JSON to this file "
                                         "(a directory in batch mode)")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    args = parser.parse_args()

    setup_logging(args.log_level)

    if not args.protocol and not args.batch:
        parser.error("either a protocol file or --batch is required")

    try:
        corpus = load_corpus(args.corpus)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load reference corpus: {e}")
        print(f"❌ Could not load reference corpus: {e}")
        sys.exit(1)
    analyzer = ProtocolAnalyzer(corpus, min_cohort_size=config.MIN_COHORT_SIZE)

    if args.batch:
        output_dir = Path(args.output or config.REPORT_DIR)
        if not analyze_batch(analyzer, args.batch, output_dir):
            sys.exit(1)
        return

    text = load_protocol_text(args.protocol)
    if text is None:
        print(f"❌ Could not read protocol text from {args.protocol}")
        sys.exit(1)

    analysis = analyzer.analyze(text, args.phase, args.area)
    print(generate_analysis_report(analysis))

    if args.output:
        output_file = Path(args.output)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(asdict(analysis), f, indent=2, ensure_ascii=False)
        print(f"\nAnalysis saved to: {output_file}")


if __name__ == "__main__":
    main()
