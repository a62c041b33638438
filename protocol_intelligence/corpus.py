#!/usr/bin/env python3
"""
Reference Corpus

Historical registry protocols used as the benchmark population. The corpus
keeps raw per-protocol metrics in a pandas DataFrame when they are available
and per-phase aggregate statistics either way, so a corpus built from the
bundled aggregate table and one built from a fresh collection run answer the
same questions.
"""

import json
import logging
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from .extraction import cohort_phase
from .stats import summarize

logger = logging.getLogger(__name__)

METRICS = (
    "sample_size",
    "total_visits",
    "eligibility_criteria",
    "study_duration_months",
    "primary_endpoints",
    "screen_failure_rate",
    "complexity_score",
)
MIN_COHORT_SIZE = 10
DEFAULT_CORPUS_PATH = Path(__file__).parent / "data" / "reference_benchmarks.json"


def _record_row(record) -> Dict:
    data = asdict(record) if is_dataclass(record) else dict(record)
    inclusion = data.get("inclusion_criteria")
    exclusion = data.get("exclusion_criteria")
    eligibility = data.get("eligibility_criteria")
    if eligibility is None and (inclusion is not None or exclusion is not None):
        eligibility = (inclusion or 0) + (exclusion or 0)
    return {
        "nct_id": data.get("nct_id"),
        "phase": cohort_phase(data.get("phase") or "Unknown"),
        "therapeutic_area": data.get("therapeutic_area") or "other",
        "sample_size": data.get("sample_size", data.get("enrollment_count")),
        "total_visits": data.get("total_visits"),
        "eligibility_criteria": eligibility,
        "study_duration_months": data.get("study_duration_months"),
        "primary_endpoints": data.get("primary_endpoints"),
        "screen_failure_rate": data.get("screen_failure_rate"),
        "complexity_score": data.get("complexity_score"),
    }


def records_frame(records: Iterable) -> pd.DataFrame:
    """One row per protocol with the benchmark metrics as numeric columns."""
    frame = pd.DataFrame([_record_row(r) for r in records],
                         columns=["nct_id", "phase", "therapeutic_area", *METRICS])
    for metric in METRICS:
        frame[metric] = pd.to_numeric(frame[metric], errors="coerce")
    return frame


def metric_summary(series: pd.Series) -> Dict[str, float]:
    return summarize(float(v) for v in series.dropna())


def build_cohorts(frame: pd.DataFrame, by: Union[str, List[str]] = "phase",
                  min_size: int = MIN_COHORT_SIZE) -> Dict[str, Dict]:
    """
    Aggregate statistics per cohort.

    Cohorts with fewer than ``min_size`` protocols are left out. Grouping by
    several columns keys the result as ``"Phase 2|oncology"``.
    """
    cohorts = {}
    if frame.empty:
        return cohorts
    for key, group in frame.groupby(by):
        if len(group) < min_size:
            continue
        name = "|".join(key) if isinstance(key, tuple) else str(key)
        cohorts[name] = {
            "count": len(group),
            "metrics": {m: metric_summary(group[m]) for m in METRICS if group[m].notna().any()},
        }
    return cohorts


class ReferenceCorpus:
    """Benchmark population: raw records (optional) plus per-phase statistics."""

    def __init__(self, frame: Optional[pd.DataFrame] = None,
                 cohorts: Optional[Dict[str, Dict]] = None,
                 metadata: Optional[Dict] = None):
        self.frame = frame if frame is not None else records_frame([])
        self.cohorts = cohorts if cohorts is not None else build_cohorts(self.frame)
        self.metadata = metadata or {}

    @classmethod
    def from_records(cls, records: Iterable, metadata: Optional[Dict] = None) -> "ReferenceCorpus":
        frame = records_frame(records)
        return cls(frame, build_cohorts(frame), metadata)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "ReferenceCorpus":
        """Load the aggregate format written by the collector (or bundled with the package)."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        frame = records_frame(data.get("protocols", []))
        cohorts = data.get("cohorts")
        if cohorts is None:
            cohorts = build_cohorts(frame)
        logger.info(f"Loaded reference corpus from {path}: {len(frame)} protocols, "
                    f"{len(cohorts)} phase cohorts")
        return cls(frame, cohorts, data.get("metadata", {}))

    @classmethod
    def load_default(cls) -> "ReferenceCorpus":
        return cls.from_json(DEFAULT_CORPUS_PATH)

    @property
    def total_protocols(self) -> int:
        if len(self.frame):
            return len(self.frame)
        return int(self.metadata.get("total_protocols")
                   or sum(c.get("count", 0) for c in self.cohorts.values()))

    def phase_counts(self) -> Dict[str, int]:
        return {phase: cohort.get("count", 0) for phase, cohort in self.cohorts.items()}

    def cohort_sample(self, metric: str, phase: str, area: Optional[str] = None) -> List[float]:
        """Sorted raw values of ``metric`` for a phase (and optionally area) cohort."""
        if self.frame.empty or metric not in self.frame:
            return []
        mask = self.frame["phase"] == cohort_phase(phase)
        if area is not None:
            mask &= self.frame["therapeutic_area"] == area
        return sorted(float(v) for v in self.frame.loc[mask, metric].dropna())

    def cohort_stats(self, metric: str, phase: str) -> Optional[Dict[str, float]]:
        cohort = self.cohorts.get(cohort_phase(phase))
        if not cohort:
            return None
        return cohort.get("metrics", {}).get(metric)

    def to_dict(self) -> Dict:
        return {"metadata": self.metadata, "cohorts": self.cohorts}
