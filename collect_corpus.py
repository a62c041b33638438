#!/usr/bin/env python3
"""
Main script for reference corpus collection

Pages through ClinicalTrials.gov, tops the corpus up with condition, phase
and study-type sweeps, and saves the deduplicated protocols together with
their aggregate benchmarks.
"""

import json
import logging
import sys
import time
from dataclasses import asdict
from pathlib import Path

import config
from logging_setup import setup_logging
from protocol_intelligence import ClinicalTrialsAPI, CorpusCollector, RateLimiter, test_api_connection

logger = logging.getLogger(__name__)


def main():
    """Main function to run the corpus collection."""
    import argparse

    parser = argparse.ArgumentParser(description="Collect a reference corpus of registry protocols.")
    parser.add_argument("--max-protocols", type=int, default=config.COLLECTOR_MAX_PROTOCOLS)
    parser.add_argument("--concurrency", type=int, default=config.COLLECTOR_CONCURRENCY,
                        help="Sweep queries issued per batch")
    parser.add_argument("--batch-interval", type=float, default=config.COLLECTOR_BATCH_INTERVAL,
                        help="Minimum seconds between sweep batches")
    parser.add_argument("--page-size", type=int, default=config.COLLECTOR_PAGE_SIZE)
    parser.add_argument("--output-dir", default=str(config.CORPUS_OUTPUT_DIR))
    parser.add_argument("--include-all-studies", action="store_true",
                        help="Keep studies without an attached protocol document")
    parser.add_argument("--study", metavar="NCT_ID",
                        help="Print the record built for a single study and exit")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    args = parser.parse_args()

    setup_logging(args.log_level)

    api = ClinicalTrialsAPI(rate_limit_delay=config.API_RATE_LIMIT_DELAY,
                            base_url=config.CLINICAL_TRIALS_API_URL,
                            timeout=config.REQUESTS_TIMEOUT)
    if not test_api_connection(api):
        print("Exiting due to API connection failure.")
        sys.exit(1)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    collector = CorpusCollector(
        api,
        output_dir,
        max_protocols=args.max_protocols,
        page_size=args.page_size,
        concurrency=args.concurrency,
        max_consecutive_empty=config.COLLECTOR_MAX_CONSECUTIVE_EMPTY,
        condition_sweep_below=config.CONDITION_SWEEP_BELOW,
        phase_sweep_below=config.PHASE_SWEEP_BELOW,
        study_type_sweep_below=config.STUDY_TYPE_SWEEP_BELOW,
        protocols_only=not args.include_all_studies,
        batch_limiter=RateLimiter(args.batch_interval),
        min_cohort_size=config.MIN_COHORT_SIZE,
    )

    if args.study:
        record = collector.collect_study(args.study)
        if record is None:
            print(f"❌ Study {args.study} could not be retrieved.")
            sys.exit(1)
        print(json.dumps(asdict(record), indent=2, ensure_ascii=False))
        return

    start_time = time.time()
    records, analysis = collector.collect()
    if not records:
        logger.error("No protocols collected")
        print("❌ No protocols were collected.")
        sys.exit(1)
    paths = collector.save_corpus(records, analysis)
    elapsed = time.time() - start_time

    collection = analysis["collection"]
    print("\n" + "=" * 80)
    print("REFERENCE CORPUS COLLECTION COMPLETE")
    print("=" * 80)
    print(f"Protocols collected: {analysis['total_protocols']:,}")
    print(f"Studies examined: {collection['studies_examined']:,}")
    print(f"Protocol hit rate: {collection['protocol_hit_rate']}%")
    print(f"Elapsed: {elapsed / 60:.1f} minutes")
    print("\nPhase distribution:")
    for phase, count in analysis["phase_distribution"].items():
        print(f"   {phase:<20} {count:>7,}")
    print("\nTherapeutic areas:")
    for area, count in analysis["therapeutic_area_distribution"].items():
        print(f"   {area:<20} {count:>7,}")
    print(f"\nDataset: {paths['dataset']}")
    print(f"Summary: {paths['summary']}")
    print("=" * 80)


if __name__ == "__main__":
    main()
