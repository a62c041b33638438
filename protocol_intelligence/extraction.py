#!/usr/bin/env python3
"""
Protocol Text Feature Extraction

Pattern-driven extraction of structured facts from free protocol text:
sample size, eligibility criteria counts, age range, washout, visit schedule,
endpoints, design flags and therapeutic area.

Every heuristic lives in its own small class so it can be swapped or tested
on its own. None of them raise; a pattern that finds nothing yields the
documented default.
"""

import logging
import re
from typing import Iterable, List, Optional, Pattern, Tuple

from .models import ProtocolFeatures

logger = logging.getLogger(__name__)


NUMBERED_MARKER = re.compile(r"\d+\.")
BULLET_MARKER = re.compile(r"•|\*|-\s")
AND_CONNECTIVE = re.compile(r"\band\b", re.IGNORECASE)
OR_CONNECTIVE = re.compile(r"\bor\b", re.IGNORECASE)

_ROMAN = {"i": 1, "ii": 2, "iii": 3, "iv": 4}
PHASE_MENTION = re.compile(
    r"\bphase\s*(iv|iii|ii|i|[1-4])[ab]?(?:\s*/\s*(?:phase\s*)?(iv|iii|ii|i|[1-4])[ab]?)?\b",
    re.IGNORECASE,
)
EARLY_PHASE = re.compile(r"\bearly\s+phase\s*(?:1|i)\b", re.IGNORECASE)
PHASE_CODES = {
    "EARLYPHASE1": "Early Phase 1",
    "EARLYPHASEI": "Early Phase 1",
    "PHASE1": "Phase 1",
    "PHASEI": "Phase 1",
    "PHASE2": "Phase 2",
    "PHASEII": "Phase 2",
    "PHASE3": "Phase 3",
    "PHASEIII": "Phase 3",
    "PHASE4": "Phase 4",
    "PHASEIV": "Phase 4",
    "I": "Phase 1",
    "II": "Phase 2",
    "III": "Phase 3",
    "IV": "Phase 4",
    "NA": "Non-Applicable",
    "N/A": "Non-Applicable",
    "NOTAPPLICABLE": "Non-Applicable",
    "NONAPPLICABLE": "Non-Applicable",
}
_PHASE_ORDER = ["Early Phase 1", "Phase 1", "Phase 2", "Phase 3", "Phase 4"]


def _to_int(raw: str) -> int:
    return int(raw.replace(",", ""))


def _count(pattern: Pattern, text: str) -> int:
    return len(pattern.findall(text))


def _clamp(value, low, high):
    return max(low, min(high, value))


def find_section(text: str, start: Pattern, stop: Pattern) -> Optional[str]:
    """
    Isolate a section of text.

    The section runs from the first match of ``start`` up to the next match
    of ``stop``, the keyword that opens the following section. A section
    with no such keyword after it is not found, and callers fall back to
    their defaults.
    """
    head = start.search(text)
    if not head:
        return None
    terminator = stop.search(text, head.end())
    if not terminator:
        return None
    return text[head.start():terminator.start()]


def count_list_items(segment: str, connective: Pattern, connective_weight: float = 1.0) -> int:
    """Largest of the numbered, bulleted and connective-based item counts."""
    signals = [
        _count(NUMBERED_MARKER, segment),
        _count(BULLET_MARKER, segment),
        int(_count(connective, segment) * connective_weight),
    ]
    return max(signals)


class SampleSizeExtractor:
    """Target enrollment from phrases like '150 patients will be enrolled'."""

    DEFAULT = 100
    NUMBER = r"(\d{1,3}(?:,\d{3})+|\d+)"
    PATTERNS = [
        re.compile(r"sample\s+size[:\s]+" + NUMBER, re.IGNORECASE),
        re.compile(NUMBER + r"\s+patients?\s+will\s+be\s+enrolled", re.IGNORECASE),
        re.compile(NUMBER + r"\s+subjects?\s+will\s+be\s+enrolled", re.IGNORECASE),
        re.compile(r"total\s+of\s+" + NUMBER + r"\s+patients?", re.IGNORECASE),
        re.compile(r"enrollment\s+of\s+" + NUMBER, re.IGNORECASE),
    ]

    def extract(self, text: str) -> int:
        for pattern in self.PATTERNS:
            match = pattern.search(text)
            if match:
                size = _to_int(match.group(1))
                if 0 < size < 10000:
                    return size
        return self.DEFAULT


class CriteriaCounter:
    """
    Counts eligibility criteria in the inclusion and exclusion sections.

    Within a section the count is the largest of three signals: numbered
    items, bullet items and logical connectives ('and' halved for inclusion,
    'or' for exclusion). Markers count wherever they occur, so a decimal
    such as 'RECIST 1.1' adds a numbered item.
    """

    INCLUSION_DEFAULT = 5
    EXCLUSION_DEFAULT = 3
    INCLUSION_START = re.compile(r"inclusion\s+criteria", re.IGNORECASE)
    INCLUSION_STOP = re.compile(r"exclusion|endpoint", re.IGNORECASE)
    EXCLUSION_START = re.compile(r"exclusion\s+criteria", re.IGNORECASE)
    EXCLUSION_STOP = re.compile(r"endpoint|objective", re.IGNORECASE)

    def inclusion_section(self, text: str) -> Optional[str]:
        return find_section(text, self.INCLUSION_START, self.INCLUSION_STOP)

    def exclusion_section(self, text: str) -> Optional[str]:
        return find_section(text, self.EXCLUSION_START, self.EXCLUSION_STOP)

    def count_inclusion(self, text: str, default: int = INCLUSION_DEFAULT) -> int:
        segment = self.inclusion_section(text)
        if segment is None:
            return default
        return _clamp(count_list_items(segment, AND_CONNECTIVE, 0.5), 1, 30)

    def count_exclusion(self, text: str, default: int = EXCLUSION_DEFAULT) -> int:
        segment = self.exclusion_section(text)
        if segment is None:
            return default
        return _clamp(count_list_items(segment, OR_CONNECTIVE), 0, 20)


class RegistryCriteriaCounter:
    """
    Counts criteria in a registry eligibility block.

    Registry text holds nothing but the two lists, so inclusion runs up to the
    word 'exclusion' (or the end) and exclusion runs to the end. A list that
    is present counts at least one criterion, an absent one counts zero.
    """

    INCLUSION_HEADING = re.compile(r"inclusion[^:]*:", re.IGNORECASE)
    EXCLUSION_HEADING = re.compile(r"exclusion[^:]*:", re.IGNORECASE)
    INCLUSION_STOP = re.compile(r"exclusion", re.IGNORECASE)
    BULLET = re.compile(r"[•\-*]\s")

    @staticmethod
    def _count(text: str, heading: Pattern, stop: Optional[Pattern] = None) -> int:
        head = heading.search(text)
        if not head:
            return 0
        end = len(text)
        if stop is not None:
            terminator = stop.search(text, head.end())
            if terminator:
                end = terminator.start()
        body = text[head.end():end]
        return max(_count(NUMBERED_MARKER, body), _count(RegistryCriteriaCounter.BULLET, body), 1)

    def count_inclusion(self, text: Optional[str]) -> int:
        return self._count(text or "", self.INCLUSION_HEADING, self.INCLUSION_STOP)

    def count_exclusion(self, text: Optional[str]) -> int:
        return self._count(text or "", self.EXCLUSION_HEADING)


class AgeRangeExtractor:
    PATTERNS = [
        re.compile(r"age[sd]?\s+(\d+)\s*[-–]\s*(\d+)", re.IGNORECASE),
        re.compile(r"(\d+)\s+to\s+(\d+)\s+years?\s+of\s+age", re.IGNORECASE),
        re.compile(r"between\s+(\d+)\s+and\s+(\d+)\s+years?", re.IGNORECASE),
        re.compile(r"≥\s*(\d+)\s+years?.*?≤\s*(\d+)\s+years?", re.IGNORECASE),
    ]

    def extract(self, text: str) -> Optional[Tuple[int, int]]:
        for pattern in self.PATTERNS:
            match = pattern.search(text)
            if match:
                low, high = int(match.group(1)), int(match.group(2))
                if 0 <= low < high <= 120:
                    return low, high
        return None


class GenderRestrictionExtractor:
    MALE = re.compile(r"\bmale\s+only|\bmen\s+only", re.IGNORECASE)
    FEMALE = re.compile(r"\bfemale\s+only|\bwomen\s+only", re.IGNORECASE)

    def extract(self, text: str) -> str:
        if self.MALE.search(text):
            return "male"
        if self.FEMALE.search(text):
            return "female"
        return "both"


class PrevalenceClassifier:
    VERY_RARE = re.compile(r"rare\s+disease|orphan\s+drug|prevalence.*?<.*?1.*?in.*?10000", re.IGNORECASE)
    RARE = re.compile(r"uncommon|prevalence.*?<.*?1.*?in.*?1000", re.IGNORECASE)
    COMMON = re.compile(r"diabetes|hypertension|depression|obesity|asthma", re.IGNORECASE)

    def classify(self, text: str) -> str:
        if self.VERY_RARE.search(text):
            return "very_rare"
        if self.RARE.search(text):
            return "rare"
        if self.COMMON.search(text):
            return "common"
        return "uncommon"


class TherapeuticAreaClassifier:
    """First matching area in list order wins, not first mention in the text."""

    AREAS = [
        ("oncology", re.compile(
            r"\b(?:cancer|tumou?r|oncology|chemotherapy|radiation|metastatic|carcinoma|lymphoma|leuka?emia)",
            re.IGNORECASE)),
        ("cardiology", re.compile(
            r"\b(?:heart|cardiac|cardiovascular|myocardial|coronary|arrhythmia)", re.IGNORECASE)),
        ("neurology", re.compile(
            r"\b(?:neurological|alzheimer|parkinson|stroke|epilepsy|migraine|multiple\s+sclerosis)",
            re.IGNORECASE)),
        ("infectious_disease", re.compile(
            r"\b(?:infection|antimicrobial|antibiotic|bacterial|viral|sepsis|pneumonia)", re.IGNORECASE)),
        ("endocrinology", re.compile(
            r"\b(?:diabetes|thyroid|hormone|endocrine|insulin|metabolic)", re.IGNORECASE)),
        ("psychiatry", re.compile(
            r"\b(?:depression|anxiety|psychiatric|mental\s+health|antidepressant|bipolar|schizophrenia)",
            re.IGNORECASE)),
    ]

    def classify(self, text: str) -> str:
        for area, pattern in self.AREAS:
            if pattern.search(text):
                return area
        return "other"


class WashoutExtractor:
    # (pattern, days per unit)
    PATTERNS = [
        (re.compile(r"washout\s+period\s+of\s+(\d+)\s+days?", re.IGNORECASE), 1),
        (re.compile(r"(\d+)[-\s]day\s+washout", re.IGNORECASE), 1),
        (re.compile(r"(\d+)[-\s]week\s+washout", re.IGNORECASE), 7),
        (re.compile(r"wash\s*out.*?(\d+)\s+days?", re.IGNORECASE), 1),
    ]

    def extract(self, text: str) -> int:
        for pattern, unit in self.PATTERNS:
            match = pattern.search(text)
            if match:
                return min(365, int(match.group(1)) * unit)
        return 0


class EligibilityFlagDetector:
    GEOGRAPHIC = re.compile(r"specific\s+geographic|limited\s+to.*?region|only\s+in.*?country", re.IGNORECASE)
    BIOMARKER = re.compile(r"biomarker|genetic\s+test|mutation|expression\s+level", re.IGNORECASE)
    PRIOR_TREATMENT = re.compile(r"previous\s+treatment|prior\s+therapy|treatment.*?failed|refractory",
                                 re.IGNORECASE)
    INVASIVE = re.compile(r"biopsy|surgery|invasive|catheter|injection", re.IGNORECASE)
    INPATIENT = re.compile(r"inpatient|hospital\s+stay|overnight\s+stay|admission", re.IGNORECASE)
    COMORBIDITIES = [
        re.compile(r"significant\s+comorbidit(?:y|ies)", re.IGNORECASE),
        re.compile(r"hepatic\s+impairment", re.IGNORECASE),
        re.compile(r"renal\s+impairment", re.IGNORECASE),
        re.compile(r"cardiac\s+disease", re.IGNORECASE),
        re.compile(r"psychiatric\s+disorder", re.IGNORECASE),
    ]

    def geographic_restriction(self, text: str) -> bool:
        return bool(self.GEOGRAPHIC.search(text))

    def biomarker_required(self, text: str) -> bool:
        return bool(self.BIOMARKER.search(text))

    def prior_treatment_required(self, text: str) -> bool:
        return bool(self.PRIOR_TREATMENT.search(text))

    def invasive_procedures(self, text: str) -> bool:
        return bool(self.INVASIVE.search(text))

    def inpatient_stays(self, text: str) -> bool:
        return bool(self.INPATIENT.search(text))

    def comorbidity_restrictions(self, text: str) -> int:
        return sum(1 for pattern in self.COMORBIDITIES if pattern.search(text))


class VisitScheduleExtractor:
    """Visit frequency, distinct visit count and study duration."""

    FREQUENCIES = [
        ("daily", re.compile(r"daily\s+visits?|every\s+day", re.IGNORECASE)),
        ("weekly", re.compile(r"weekly\s+visits?|every\s+week", re.IGNORECASE)),
        ("biweekly", re.compile(r"biweekly|every\s+(?:2|two)\s+weeks", re.IGNORECASE)),
        ("quarterly", re.compile(r"quarterly|every\s+(?:3|three)\s+months", re.IGNORECASE)),
    ]
    VISIT_MARKERS = [
        re.compile(r"visit\s+\d+", re.IGNORECASE),
        re.compile(r"week\s+\d+", re.IGNORECASE),
        re.compile(r"day\s+\d+", re.IGNORECASE),
        re.compile(r"month\s+\d+", re.IGNORECASE),
        re.compile(r"screening|baseline|follow[-\s]?up|end\s+of\s+study", re.IGNORECASE),
    ]
    DURATIONS = [
        re.compile(r"study\s+duration[:\s]+(\d+)\s+months?", re.IGNORECASE),
        re.compile(r"(\d+)[-\s]month\s+study", re.IGNORECASE),
        re.compile(r"treatment\s+period[:\s]+(\d+)\s+months?", re.IGNORECASE),
        re.compile(r"follow[-\s]up.*?(\d+)\s+months?", re.IGNORECASE),
    ]
    DEFAULT_DURATION = 12

    def frequency(self, text: str) -> str:
        for name, pattern in self.FREQUENCIES:
            if pattern.search(text):
                return name
        return "monthly"

    def total_visits(self, text: str) -> int:
        seen = set()
        for pattern in self.VISIT_MARKERS:
            for match in pattern.findall(text):
                seen.add(re.sub(r"[\s-]+", " ", match.lower().strip()))
        return _clamp(len(seen), 1, 50)

    def duration_months(self, text: str) -> int:
        for pattern in self.DURATIONS:
            match = pattern.search(text)
            if match:
                months = int(match.group(1))
                if 0 < months <= 60:
                    return months
        return self.DEFAULT_DURATION


class EndpointCounter:
    PRIMARY_START = re.compile(r"primary\s+endpoints?", re.IGNORECASE)
    PRIMARY_STOP = re.compile(r"secondary|safety|statistical", re.IGNORECASE)
    SECONDARY_START = re.compile(r"secondary\s+endpoints?", re.IGNORECASE)
    SECONDARY_STOP = re.compile(r"safety|statistical|exploratory", re.IGNORECASE)
    EXPLORATORY = re.compile(r"exploratory\s+endpoints?|biomarker|pharmacokinetic|pharmacodynamic",
                             re.IGNORECASE)

    def primary_section(self, text: str) -> Optional[str]:
        return find_section(text, self.PRIMARY_START, self.PRIMARY_STOP)

    def count_primary(self, text: str) -> int:
        segment = self.primary_section(text)
        if segment is None:
            return 1
        return _clamp(count_list_items(segment, AND_CONNECTIVE), 1, 5)

    def count_secondary(self, text: str) -> int:
        segment = find_section(text, self.SECONDARY_START, self.SECONDARY_STOP)
        if segment is None:
            return 0
        return min(20, count_list_items(segment, AND_CONNECTIVE, 0.5))

    def count_exploratory(self, text: str) -> int:
        return min(15, _count(self.EXPLORATORY, text))


class DesignFeatureDetector:
    """Randomization, masking, phase and the operational complexity counters."""

    RANDOMIZED = re.compile(r"\brandomi[sz](?:ed|ation)\b", re.IGNORECASE)
    MASKED = re.compile(r"\b(?:double|single|triple)[-\s]blind|\bmasked\b|\bplacebo", re.IGNORECASE)
    PROCEDURES = [
        re.compile(r"blood\s+draw|phlebotomy", re.IGNORECASE),
        re.compile(r"vital\s+signs", re.IGNORECASE),
        re.compile(r"physical\s+exam", re.IGNORECASE),
        re.compile(r"\becg\b|electrocardiogram", re.IGNORECASE),
        re.compile(r"x-?ray|ct\s+scan|\bmri\b|imaging", re.IGNORECASE),
        re.compile(r"biopsy", re.IGNORECASE),
        re.compile(r"questionnaire|survey", re.IGNORECASE),
        re.compile(r"pk\s+sampling|pharmacokinetic", re.IGNORECASE),
    ]
    LABS = [
        re.compile(r"complete\s+blood\s+count|\bcbc\b", re.IGNORECASE),
        re.compile(r"liver\s+function|\balt\b|\bast\b", re.IGNORECASE),
        re.compile(r"kidney\s+function|creatinine|\bbun\b", re.IGNORECASE),
        re.compile(r"glucose|hemoglobin|platelet", re.IGNORECASE),
        re.compile(r"biomarker|protein\s+level", re.IGNORECASE),
    ]
    IMAGING = [
        re.compile(r"ct\s+scan|computed\s+tomography", re.IGNORECASE),
        re.compile(r"\bmri\b|magnetic\s+resonance", re.IGNORECASE),
        re.compile(r"x-?ray", re.IGNORECASE),
        re.compile(r"ultrasound|echocardiogram", re.IGNORECASE),
        re.compile(r"pet\s+scan|positron\s+emission", re.IGNORECASE),
    ]
    CONDITIONALS = [
        re.compile(r"\bif\b[^.\n]{1,200}?\bthen\b", re.IGNORECASE),
        re.compile(r"in\s+case\s+of", re.IGNORECASE),
        re.compile(r"depending\s+on", re.IGNORECASE),
        re.compile(r"based\s+on\s+the\s+result", re.IGNORECASE),
        re.compile(r"contingent", re.IGNORECASE),
    ]
    ARMS = [
        re.compile(r"arm\s+\d+|group\s+\d+", re.IGNORECASE),
        re.compile(r"treatment\s+\d+", re.IGNORECASE),
        re.compile(r"cohort\s+\d+", re.IGNORECASE),
        re.compile(r"placebo|control\s+group", re.IGNORECASE),
    ]
    COHORT = re.compile(r"cohort\s+\d+", re.IGNORECASE)
    ADAPTIVE = re.compile(
        r"adaptive|interim\s+analysis|dose\s+escalation|futility\s+analysis|sample\s+size\s+re-?estimation",
        re.IGNORECASE)
    INTERIM = re.compile(r"interim\s+analys[ie]s", re.IGNORECASE)

    def randomized(self, text: str) -> bool:
        return bool(self.RANDOMIZED.search(text))

    def masked(self, text: str) -> bool:
        return bool(self.MASKED.search(text))

    def phases(self, text: str) -> Tuple[str, ...]:
        if EARLY_PHASE.search(text):
            return ("Early Phase 1",)
        match = PHASE_MENTION.search(text)
        if not match:
            return ()
        labels = []
        for raw in match.groups():
            if raw:
                label = _phase_label(raw)
                if label not in labels:
                    labels.append(label)
        return tuple(labels)

    def procedures_per_visit(self, text: str) -> int:
        total = sum(_count(p, text) for p in self.PROCEDURES)
        return _clamp(total // 2, 1, 30)

    def lab_requirements(self, text: str) -> int:
        return min(25, sum(_count(p, text) for p in self.LABS))

    def imaging_requirements(self, text: str) -> int:
        return min(10, sum(_count(p, text) for p in self.IMAGING))

    def conditional_statements(self, text: str) -> int:
        return min(20, sum(_count(p, text) for p in self.CONDITIONALS))

    def study_arms(self, text: str) -> int:
        arms = set()
        for pattern in self.ARMS:
            arms.update(m.lower() for m in pattern.findall(text))
        return _clamp(len(arms), 1, 10)

    def cohorts(self, text: str) -> int:
        return min(5, _count(self.COHORT, text) or 1)

    def adaptive_design(self, text: str) -> bool:
        return bool(self.ADAPTIVE.search(text))

    def interim_analyses(self, text: str) -> int:
        return min(5, _count(self.INTERIM, text))


class CompetitionAssessor:
    HIGH = re.compile(r"oncology|cancer|alzheimer", re.IGNORECASE)
    MEDIUM = re.compile(r"diabetes|hypertension|depression", re.IGNORECASE)

    def assess(self, text: str) -> str:
        if self.HIGH.search(text):
            return "high"
        if self.MEDIUM.search(text):
            return "medium"
        return "low"


class TextFeatureExtractor:
    """Runs every capability over a protocol and assembles ProtocolFeatures."""

    def __init__(self):
        self.sample_size = SampleSizeExtractor()
        self.criteria = CriteriaCounter()
        self.age_range = AgeRangeExtractor()
        self.gender = GenderRestrictionExtractor()
        self.prevalence = PrevalenceClassifier()
        self.therapeutic_area = TherapeuticAreaClassifier()
        self.washout = WashoutExtractor()
        self.flags = EligibilityFlagDetector()
        self.schedule = VisitScheduleExtractor()
        self.endpoints = EndpointCounter()
        self.design = DesignFeatureDetector()
        self.competition = CompetitionAssessor()

    def extract(self, text: Optional[str]) -> ProtocolFeatures:
        text = text or ""
        sections = []
        if self.criteria.inclusion_section(text) is not None:
            sections.append("inclusion")
        if self.criteria.exclusion_section(text) is not None:
            sections.append("exclusion")
        if self.endpoints.primary_section(text) is not None:
            sections.append("primary_endpoint")

        features = ProtocolFeatures(
            sample_size=self.sample_size.extract(text),
            inclusion_criteria=self.criteria.count_inclusion(text),
            exclusion_criteria=self.criteria.count_exclusion(text),
            age_range=self.age_range.extract(text),
            gender_restriction=self.gender.extract(text),
            disease_prevalence=self.prevalence.classify(text),
            therapeutic_area=self.therapeutic_area.classify(text),
            washout_days=self.washout.extract(text),
            geographic_restriction=self.flags.geographic_restriction(text),
            biomarker_required=self.flags.biomarker_required(text),
            prior_treatment_required=self.flags.prior_treatment_required(text),
            comorbidity_restrictions=self.flags.comorbidity_restrictions(text),
            invasive_procedures=self.flags.invasive_procedures(text),
            inpatient_stays=self.flags.inpatient_stays(text),
            visit_frequency=self.schedule.frequency(text),
            study_duration_months=self.schedule.duration_months(text),
            competing_trials=self.competition.assess(text),
            primary_endpoints=self.endpoints.count_primary(text),
            secondary_endpoints=self.endpoints.count_secondary(text),
            exploratory_endpoints=self.endpoints.count_exploratory(text),
            randomized=self.design.randomized(text),
            masked=self.design.masked(text),
            phases=self.design.phases(text),
            total_visits=self.schedule.total_visits(text),
            procedures_per_visit=self.design.procedures_per_visit(text),
            lab_requirements=self.design.lab_requirements(text),
            imaging_requirements=self.design.imaging_requirements(text),
            conditional_statements=self.design.conditional_statements(text),
            study_arms=self.design.study_arms(text),
            cohorts=self.design.cohorts(text),
            adaptive_design=self.design.adaptive_design(text),
            interim_analyses=self.design.interim_analyses(text),
            word_count=len(text.split()),
            sections_found=tuple(sections),
        )
        logger.debug(f"Extracted features: sample_size={features.sample_size}, "
                     f"criteria={features.total_criteria}, area={features.therapeutic_area}")
        return features


_default_extractor = TextFeatureExtractor()


def extract_features(text: Optional[str]) -> ProtocolFeatures:
    """Extract structured features from protocol text. Never raises."""
    return _default_extractor.extract(text)


def _phase_label(raw: str) -> str:
    number = _ROMAN.get(raw.lower()) or int(raw)
    return f"Phase {number}"


def detect_study_phase(text: Optional[str]) -> str:
    """Phase named in the text, or 'Phase 2' when none is mentioned."""
    phases = DesignFeatureDetector().phases(text or "")
    if not phases:
        return "Phase 2"
    return cohort_phase("/".join(phases))


def normalize_phase(value) -> str:
    """
    Map registry codes, free-text labels or lists of either to a phase label.

    ``["PHASE1", "PHASE2"]`` becomes ``"Phase 1/Phase 2"``; anything
    unrecognised becomes ``"Unknown"``.
    """
    if value is None:
        return "Unknown"
    if isinstance(value, (list, tuple)):
        parts: Iterable = value
    else:
        parts = str(value).split("/") if "/" in str(value) and str(value).upper() != "N/A" else [value]

    labels: List[str] = []
    for part in parts:
        key = re.sub(r"[\s_\-]", "", str(part)).upper()
        label = PHASE_CODES.get(key)
        if label is None and key.isdigit() and 1 <= int(key) <= 4:
            label = f"Phase {key}"
        if label and label not in labels:
            labels.append(label)

    if not labels:
        return "Unknown"
    return "/".join(labels)


def cohort_phase(label: str) -> str:
    """Single phase used for cohort lookup; combined phases use the highest."""
    parts = [p for p in label.split("/") if p]
    ranked = [p for p in parts if p in _PHASE_ORDER]
    if not ranked:
        return parts[0] if parts else "Unknown"
    return max(ranked, key=_PHASE_ORDER.index)
