#!/usr/bin/env python3
"""
Reference Corpus Collector

Harvests protocol metadata from ClinicalTrials.gov to build the benchmark
corpus. Collection runs in stages: systematic pagination through the whole
registry, then condition, phase and study-type sweeps while the corpus is
still below the configured sizes. Studies are deduplicated by NCT id and
aggregated into per-phase and per-phase/area benchmark statistics.
"""

import json
import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .api import MAX_PAGE_SIZE, ClinicalTrialsAPI, RateLimiter
from .complexity import categorize_complexity, score_counts
from .corpus import MIN_COHORT_SIZE, build_cohorts, records_frame
from .extraction import RegistryCriteriaCounter, TherapeuticAreaClassifier, normalize_phase
from .models import ProtocolRecord
from .reports import generate_corpus_summary
from .stats import distribution, summarize

logger = logging.getLogger(__name__)

DATA_SOURCE = "ClinicalTrials.gov API v2"
DOCUMENT_URL = "https://clinicaltrials.gov/api/v2/studies/{nct_id}/document/{filename}"
PROTOCOL_DOC_TYPES = ("Prot", "Prot_SAP")
DAYS_PER_MONTH = 30.44

CONDITIONS = (
    # Cancers
    "cancer", "carcinoma", "sarcoma", "lymphoma", "leukemia", "melanoma", "glioma",
    "breast cancer", "lung cancer", "prostate cancer", "colon cancer", "liver cancer",
    "pancreatic cancer", "kidney cancer", "bladder cancer", "stomach cancer", "brain tumor",
    "ovarian cancer", "cervical cancer", "endometrial cancer", "thyroid cancer",
    "head and neck cancer", "esophageal cancer", "bone cancer", "skin cancer",
    # Cardiovascular
    "heart failure", "myocardial infarction", "angina", "arrhythmia", "hypertension",
    "atrial fibrillation", "stroke", "peripheral artery disease", "heart valve disease",
    "cardiomyopathy", "coronary artery disease", "thrombosis", "embolism", "aneurysm",
    # Neurological
    "alzheimer", "parkinson", "multiple sclerosis", "epilepsy", "migraine", "dementia",
    "ALS", "huntington", "cerebral palsy", "spinal cord injury", "traumatic brain injury",
    "neuropathy", "neuralgia", "dystonia", "tremor", "seizure",
    # Respiratory
    "asthma", "COPD", "pneumonia", "lung fibrosis", "cystic fibrosis", "bronchitis",
    "tuberculosis", "respiratory failure", "sleep apnea", "lung transplant",
    # Endocrine
    "diabetes", "thyroid", "adrenal", "growth hormone", "insulin", "metabolic syndrome",
    "obesity", "osteoporosis", "hormone replacement", "menopause", "testosterone",
    # Infectious disease
    "HIV", "hepatitis", "COVID-19", "influenza", "sepsis", "malaria",
    "meningitis", "infection", "antimicrobial", "antiviral", "vaccine",
    # Mental health
    "depression", "anxiety", "bipolar", "schizophrenia", "PTSD", "ADHD", "autism",
    "eating disorder", "addiction", "substance abuse", "insomnia", "OCD",
    # Autoimmune and inflammatory
    "rheumatoid arthritis", "lupus", "psoriasis", "inflammatory bowel disease",
    "crohn disease", "ulcerative colitis", "psoriatic arthritis",
    "ankylosing spondylitis", "vasculitis", "scleroderma", "fibromyalgia",
    # Renal and urologic
    "kidney disease", "dialysis", "kidney transplant", "bladder dysfunction",
    "prostate", "erectile dysfunction", "incontinence", "nephritis",
    # Dermatologic
    "eczema", "dermatitis", "acne", "wound healing", "burns", "vitiligo",
    "alopecia", "skin infection",
    # Gastrointestinal
    "liver disease", "cirrhosis", "gallbladder", "pancreatitis",
    "gastroesophageal reflux", "peptic ulcer", "irritable bowel syndrome",
    # Hematologic
    "anemia", "thrombocytopenia", "hemophilia", "sickle cell", "thalassemia",
    "multiple myeloma", "bone marrow transplant",
    # Reproductive
    "pregnancy", "fertility", "contraception", "endometriosis", "fibroids",
    "polycystic ovary syndrome", "menstrual disorder",
    # Pediatric
    "pediatric", "neonatal", "infant", "child development", "childhood cancer",
    "congenital heart disease",
    # Geriatric
    "aging", "frailty", "falls", "cognitive decline", "polypharmacy",
    # Interventions
    "surgery", "radiation therapy", "chemotherapy", "immunotherapy",
    "gene therapy", "stem cell therapy", "transplantation", "device",
    "rehabilitation", "physical therapy", "nutrition", "exercise",
)
PHASE_CODES = ("EARLY_PHASE1", "PHASE1", "PHASE2", "PHASE3", "PHASE4", "NA")
STUDY_TYPES = ("INTERVENTIONAL", "OBSERVATIONAL", "EXPANDED_ACCESS")
ENROLLMENT_BINS = (
    ("1-50", 1, 50),
    ("51-100", 51, 100),
    ("101-500", 101, 500),
    ("501-1000", 501, 1000),
    ("Over 1000", 1001, float("inf")),
)

_criteria_counter = RegistryCriteriaCounter()
_area_classifier = TherapeuticAreaClassifier()


def _large_docs(study: Dict) -> List[Dict]:
    docs = study.get("documentSection", {}).get("largeDocumentModule", {}).get("largeDocs")
    return docs if isinstance(docs, list) else []


def _is_protocol_doc(doc: Dict) -> bool:
    return doc.get("hasProtocol") is True or doc.get("typeAbbrev") in PROTOCOL_DOC_TYPES


def has_protocol_document(study: Dict) -> bool:
    """True when the study publishes a protocol document."""
    return any(
        _is_protocol_doc(doc) or "protocol" in (doc.get("label") or "").lower()
        for doc in _large_docs(study)
    )


def extract_protocol_documents(study: Dict) -> List[Dict]:
    nct_id = study.get("protocolSection", {}).get("identificationModule", {}).get("nctId", "")
    return [
        {
            "filename": doc.get("filename", ""),
            "label": doc.get("label", ""),
            "date": doc.get("date", ""),
            "upload_date": doc.get("uploadDate", ""),
            "size": doc.get("size"),
            "download_url": DOCUMENT_URL.format(nct_id=nct_id, filename=doc.get("filename", "")),
            "has_protocol": bool(doc.get("hasProtocol")),
            "has_sap": bool(doc.get("hasSap")),
            "has_icf": bool(doc.get("hasIcf")),
        }
        for doc in _large_docs(study)
        if _is_protocol_doc(doc)
    ]


def study_duration_months(start_date: str, completion_date: str) -> Optional[float]:
    """Months between two registry dates ("2020-01-15" or "2020-01"), one decimal."""
    if not start_date or not completion_date:
        return None
    start = pd.to_datetime(start_date, errors="coerce")
    end = pd.to_datetime(completion_date, errors="coerce")
    if pd.isna(start) or pd.isna(end) or end < start:
        return None
    return round((end - start).days / DAYS_PER_MONTH, 1)


def build_protocol_record(study: Dict, collection_date: Optional[str] = None) -> Optional[ProtocolRecord]:
    """Convert a registry study into a ProtocolRecord; None if it has no NCT id."""
    protocol = study.get("protocolSection", {})
    identification = protocol.get("identificationModule", {})
    status = protocol.get("statusModule", {})
    design = protocol.get("designModule", {})
    design_info = design.get("designInfo", {})
    eligibility = protocol.get("eligibilityModule", {})
    outcomes = protocol.get("outcomesModule", {})
    conditions = protocol.get("conditionsModule", {}).get("conditions", [])

    nct_id = identification.get("nctId", "")
    if not nct_id:
        return None

    criteria_text = eligibility.get("eligibilityCriteria") or ""
    inclusion = _criteria_counter.count_inclusion(criteria_text)
    exclusion = _criteria_counter.count_exclusion(criteria_text)
    primary = len(outcomes.get("primaryOutcomes", []))
    secondary = len(outcomes.get("secondaryOutcomes", []))
    other = len(outcomes.get("otherOutcomes", []))

    phases = design.get("phases") or []
    allocation = design_info.get("allocation", "")
    masking = design_info.get("maskingInfo", {}).get("masking", "")
    score, _ = score_counts(
        inclusion=inclusion,
        exclusion=exclusion,
        primary=primary,
        secondary=secondary,
        other=other,
        randomized=allocation == "RANDOMIZED",
        masked=masking not in ("", "NONE"),
        phases=len(phases),
    )

    brief_title = identification.get("briefTitle", "")
    start_date = status.get("startDateStruct", {}).get("date", "")
    completion_date = status.get("completionDateStruct", {}).get("date", "")
    enrollment = design.get("enrollmentInfo", {})

    return ProtocolRecord(
        nct_id=nct_id,
        brief_title=brief_title,
        official_title=identification.get("officialTitle", ""),
        phases=list(phases),
        phase=normalize_phase(phases) if phases else "Unknown",
        study_type=design.get("studyType", ""),
        allocation=allocation,
        intervention_model=design_info.get("interventionModel", ""),
        masking=masking,
        enrollment_count=enrollment.get("count") or 0,
        enrollment_type=enrollment.get("type", ""),
        start_date=start_date,
        completion_date=completion_date,
        study_duration_months=study_duration_months(start_date, completion_date),
        inclusion_criteria=inclusion,
        exclusion_criteria=exclusion,
        primary_endpoints=primary,
        secondary_endpoints=secondary,
        other_endpoints=other,
        complexity_score=score,
        complexity_category=categorize_complexity(score),
        therapeutic_area=_area_classifier.classify(" ".join([brief_title, *conditions])),
        protocol_documents=extract_protocol_documents(study),
        collection_date=collection_date or datetime.now().isoformat(),
        data_source=DATA_SOURCE,
    )


def deduplicate(records: Iterable[ProtocolRecord]) -> List[ProtocolRecord]:
    """One record per NCT id; the first one seen is kept."""
    seen = set()
    unique = []
    for record in records:
        if record.nct_id in seen:
            continue
        seen.add(record.nct_id)
        unique.append(record)
    return unique


def _ranked(counter: Counter) -> Dict[str, int]:
    return dict(counter.most_common())


def analyze_corpus(records: Sequence[ProtocolRecord], min_cohort_size: int = MIN_COHORT_SIZE) -> Dict:
    """Distributions, summary statistics and benchmark cohorts of a corpus."""
    frame = records_frame(records)
    return {
        "total_protocols": len(records),
        "min_cohort_size": min_cohort_size,
        "phase_distribution": _ranked(Counter(r.phase for r in records)),
        "therapeutic_area_distribution": _ranked(Counter(r.therapeutic_area for r in records)),
        "complexity": {
            "scores": summarize(r.complexity_score for r in records),
            "categories": _ranked(Counter(r.complexity_category for r in records)),
        },
        "enrollment": summarize(r.enrollment_count for r in records if r.enrollment_count),
        "enrollment_distribution": distribution((r.enrollment_count for r in records), ENROLLMENT_BINS),
        "eligibility_criteria": summarize(r.eligibility_criteria for r in records),
        "study_duration_months": summarize(r.study_duration_months for r in records),
        "phase_benchmarks": build_cohorts(frame, "phase", min_cohort_size),
        "phase_area_benchmarks": build_cohorts(frame, ["phase", "therapeutic_area"], min_cohort_size),
    }


class CorpusCollector:
    """Collects registry protocols into a deduplicated, aggregated corpus."""

    def __init__(self, api: ClinicalTrialsAPI, output_dir: Path,
                 max_protocols: int = 50000,
                 page_size: int = 1000,
                 concurrency: int = 20,
                 batch_interval: float = 0.1,
                 max_consecutive_empty: int = 5,
                 condition_sweep_below: int = 5000,
                 phase_sweep_below: int = 8000,
                 study_type_sweep_below: int = 10000,
                 protocols_only: bool = True,
                 conditions: Sequence[str] = CONDITIONS,
                 batch_limiter: Optional[RateLimiter] = None,
                 min_cohort_size: int = MIN_COHORT_SIZE):
        self.api = api
        self.output_dir = Path(output_dir)
        self.max_protocols = max_protocols
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        self.concurrency = max(1, concurrency)
        self.max_consecutive_empty = max_consecutive_empty
        self.condition_sweep_below = condition_sweep_below
        self.phase_sweep_below = phase_sweep_below
        self.study_type_sweep_below = study_type_sweep_below
        self.protocols_only = protocols_only
        self.conditions = list(conditions)
        self.batch_limiter = batch_limiter or RateLimiter(batch_interval)
        self.min_cohort_size = min_cohort_size

        self.records: List[ProtocolRecord] = []
        self._seen_ids = set()
        self.pages_processed = 0
        self.studies_examined = 0

    @property
    def unique_count(self) -> int:
        return len(self._seen_ids)

    def _process_studies(self, studies: List[Dict]) -> List[ProtocolRecord]:
        records = []
        for study in studies:
            if self.protocols_only and not has_protocol_document(study):
                continue
            record = build_protocol_record(study)
            if record is not None:
                records.append(record)
        return records

    def _add(self, records: List[ProtocolRecord]):
        self.records.extend(records)
        self._seen_ids.update(r.nct_id for r in records)

    def collect_study(self, nct_id: str) -> Optional[ProtocolRecord]:
        """Fetch and convert one study, whether or not it publishes a protocol."""
        study = self.api.get_study_details(nct_id)
        if not study:
            logger.warning(f"Study {nct_id} could not be retrieved")
            return None
        return build_protocol_record(study)

    def collect_systematically(self) -> int:
        """Page through the registry; returns the number of records added."""
        logger.info("Starting systematic pagination")
        added = 0
        page_token = None
        has_more = True
        consecutive_empty = 0

        while (has_more and self.unique_count < self.max_protocols
               and consecutive_empty < self.max_consecutive_empty):
            self.pages_processed += 1
            page = self.api.search_page({"countTotal": "true"}, page_token, self.page_size)
            studies = page["studies"] if page else []
            if not studies:
                consecutive_empty += 1
                logger.warning(f"Empty or failed page {self.pages_processed} "
                               f"({consecutive_empty}/{self.max_consecutive_empty})")
                continue

            consecutive_empty = 0
            self.studies_examined += len(studies)
            records = self._process_studies(studies)
            self._add(records)
            added += len(records)
            logger.info(f"Page {self.pages_processed}: +{len(records)} protocols "
                        f"({self.unique_count} unique)")

            page_token = page.get("nextPageToken")
            has_more = len(studies) == self.page_size and bool(page_token)

        return added

    def _fetch_slice(self, params: Dict) -> Tuple[int, List[ProtocolRecord]]:
        page = self.api.search_page(params, page_size=self.page_size)
        if not page:
            return 0, []
        return len(page["studies"]), self._process_studies(page["studies"])

    def run_sweep(self, name: str, slices: Sequence[Tuple[str, Dict]]) -> int:
        """
        Query each slice once, ``concurrency`` slices at a time.

        Every batch waits for all of its workers; a failing worker is logged
        and contributes nothing. Results are merged in slice order.
        """
        logger.info(f"Starting {name} sweep over {len(slices)} slices")
        added = 0
        for start in range(0, len(slices), self.concurrency):
            batch = slices[start:start + self.concurrency]
            self.batch_limiter.acquire()
            with ThreadPoolExecutor(max_workers=len(batch), thread_name_prefix=name) as executor:
                futures = [(label, executor.submit(self._fetch_slice, params)) for label, params in batch]
                for label, future in futures:
                    try:
                        examined, records = future.result()
                    except Exception as e:
                        logger.error(f"{name} slice '{label}' failed: {e}")
                        continue
                    self.studies_examined += examined
                    self._add(records)
                    added += len(records)
            logger.info(f"{name} batch {start // self.concurrency + 1}: "
                        f"{self.unique_count} unique protocols")
        return added

    def condition_slices(self) -> List[Tuple[str, Dict]]:
        return [(condition, {"query.cond": condition}) for condition in self.conditions]

    @staticmethod
    def phase_slices() -> List[Tuple[str, Dict]]:
        return [(phase, {"filter.advanced": f"AREA[Phase]{phase}"}) for phase in PHASE_CODES]

    @staticmethod
    def study_type_slices() -> List[Tuple[str, Dict]]:
        return [(kind, {"filter.advanced": f"AREA[StudyType]{kind}"}) for kind in STUDY_TYPES]

    def collect(self) -> Tuple[List[ProtocolRecord], Dict]:
        """Run every collection stage; returns (unique records, analysis)."""
        self.collect_systematically()
        if self.unique_count < self.condition_sweep_below:
            self.run_sweep("condition", self.condition_slices())
        if self.unique_count < self.phase_sweep_below:
            self.run_sweep("phase", self.phase_slices())
        if self.unique_count < self.study_type_sweep_below:
            self.run_sweep("study-type", self.study_type_slices())

        unique = deduplicate(self.records)
        logger.info(f"Deduplication: {len(self.records)} -> {len(unique)} unique protocols")

        analysis = analyze_corpus(unique, self.min_cohort_size)
        analysis["collection"] = {
            "pages_processed": self.pages_processed,
            "studies_examined": self.studies_examined,
            "records_before_deduplication": len(self.records),
            "protocol_hit_rate": round(len(unique) / self.studies_examined * 100, 1)
            if self.studies_examined else 0.0,
        }
        return unique, analysis

    def save_corpus(self, records: List[ProtocolRecord], analysis: Dict) -> Dict[str, Path]:
        """Write per-protocol files, the aggregate dataset and a markdown summary."""
        protocols_dir = self.output_dir / "protocols"
        protocols_dir.mkdir(parents=True, exist_ok=True)

        saved = 0
        for record in records:
            path = protocols_dir / f"{record.nct_id}_protocol_data.json"
            try:
                with open(path, "w", encoding="utf-8") as f:
                    json.dump(asdict(record), f, indent=2, ensure_ascii=False)
                saved += 1
            except OSError as e:
                logger.error(f"Failed to save {path}: {e}")

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        dataset_file = self.output_dir / f"reference_corpus_{timestamp}.json"
        with open(dataset_file, "w", encoding="utf-8") as f:
            json.dump({
                "metadata": {
                    "collection_date": datetime.now().isoformat(),
                    "data_source": DATA_SOURCE,
                    "total_protocols": len(records),
                    "protocols_only": self.protocols_only,
                },
                "analysis": analysis,
                "cohorts": analysis.get("phase_benchmarks", {}),
                "protocols": [asdict(r) for r in records],
            }, f, indent=2, ensure_ascii=False)

        summary_file = self.output_dir / f"corpus_summary_{timestamp}.md"
        with open(summary_file, "w", encoding="utf-8") as f:
            f.write(generate_corpus_summary(records, analysis))

        logger.info(f"Saved {saved}/{len(records)} protocol files to {protocols_dir}")
        logger.info(f"  Dataset: {dataset_file}")
        logger.info(f"  Summary: {summary_file}")
        return {"protocols_dir": protocols_dir, "dataset": dataset_file, "summary": summary_file}
