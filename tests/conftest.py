# tests/conftest.py
"""
Pytest configuration and fixtures for protocol_intelligence tests.

Provides:
- A sample protocol text with known feature counts
- Factories for ClinicalTrials.gov v2 study payloads
- A fake registry API that serves scripted pages without network access
"""

import threading
from typing import Dict, List, Optional, Sequence

import pytest

from protocol_intelligence.api import RateLimiter


SAMPLE_PROTOCOL = """A Phase II Study of Drug X in Patients With Advanced Solid Tumors

1. STUDY DESIGN
This is a randomized, double-blind, placebo-controlled study.
Approximately 150 patients will be enrolled.

2. STUDY POPULATION
Inclusion Criteria:
1. Histologically confirmed solid tumor
2. Measurable disease per RECIST criteria
3. ECOG performance status 0 to 1
4. Adequate organ function
5. Life expectancy of at least 12 weeks
6. At least 18 years old
7. Signed informed consent
8. Willing to comply with study visits

Exclusion Criteria:
1. Pregnant or breastfeeding women

Primary Endpoint:
- Progression-free survival at 6 months

Secondary Endpoints:
- Overall survival
- Objective response rate
- Duration of response
- Quality of life

3. SAFETY AND STUDY PROCEDURES
Patients attend a screening visit, a baseline visit and clinic visits every 3 months.
Study duration: 24 months.
"""

ELIGIBILITY_TEXT = """Inclusion Criteria:

* Adults with confirmed disease
* Measurable lesion

Exclusion Criteria:

* Pregnancy
"""


# Malformed or extreme protocol texts; every feature must stay inside its domain
HOSTILE_TEXTS = [
    "Approximately 999999999999999999999999 patients will be enrolled.",
    "Participants aged 200-5 years at screening.",
    "A washout period of 99999 days is required. Study duration: 99999 months.",
    "\u00c9tude de phase II \u2265 18 years \u2264 200 years \u60a3\u8005 \U0001f600 \u2022 crit\u00e8re",
    "if " * 20000,
    "Inclusion Criteria:\n" + "1. x and y\n" * 500 + "Exclusion Criteria:\n" + "* a or b\n" * 500
    + "Primary endpoint:\n" + "- z\n" * 50 + "Secondary endpoints:\n" + "- w\n" * 50 + "Statistical methods",
    SAMPLE_PROTOCOL * 300,
]


@pytest.fixture
def sample_protocol() -> str:
    return SAMPLE_PROTOCOL


def make_study(nct_id: str,
               phases: Sequence[str] = ("PHASE2",),
               title: str = "Study of Drug X in Lung Cancer",
               conditions: Sequence[str] = ("Lung Cancer",),
               criteria: str = ELIGIBILITY_TEXT,
               primary: int = 1,
               secondary: int = 2,
               allocation: str = "RANDOMIZED",
               masking: Optional[str] = "DOUBLE",
               enrollment: int = 120,
               start: str = "2020-01-15",
               completion: str = "2022-01-15",
               with_protocol: bool = True) -> Dict:
    """A ClinicalTrials.gov v2 study payload."""
    design_info = {"allocation": allocation, "interventionModel": "PARALLEL"}
    if masking is not None:
        design_info["maskingInfo"] = {"masking": masking}

    study = {
        "protocolSection": {
            "identificationModule": {
                "nctId": nct_id,
                "briefTitle": title,
                "officialTitle": f"{title} (official)",
            },
            "statusModule": {
                "startDateStruct": {"date": start},
                "completionDateStruct": {"date": completion},
            },
            "conditionsModule": {"conditions": list(conditions)},
            "designModule": {
                "studyType": "INTERVENTIONAL",
                "phases": list(phases),
                "designInfo": design_info,
                "enrollmentInfo": {"count": enrollment, "type": "ESTIMATED"},
            },
            "eligibilityModule": {"eligibilityCriteria": criteria},
            "outcomesModule": {
                "primaryOutcomes": [{"measure": f"Primary {i}"} for i in range(primary)],
                "secondaryOutcomes": [{"measure": f"Secondary {i}"} for i in range(secondary)],
            },
        }
    }
    if with_protocol:
        study["documentSection"] = {
            "largeDocumentModule": {
                "largeDocs": [{
                    "typeAbbrev": "Prot_SAP",
                    "hasProtocol": True,
                    "hasSap": True,
                    "hasIcf": False,
                    "label": "Study Protocol and Statistical Analysis Plan",
                    "date": "2019-12-01",
                    "uploadDate": "2020-01-10T10:00",
                    "filename": "Prot_SAP_000.pdf",
                    "size": 123456,
                }]
            }
        }
    return study


@pytest.fixture
def study_factory():
    return make_study


class FakeRegistryAPI:
    """
    Serves scripted registry responses.

    ``pages`` maps a page token (None for the first page) to a response, or
    to a list of responses returned one per call. ``slices`` maps a sweep's
    ``query.cond`` or ``filter.advanced`` value to its studies. Slices named
    in ``failing`` raise. ``details`` maps an NCT id to its full study record.
    """

    def __init__(self, pages: Optional[Dict] = None,
                 slices: Optional[Dict[str, List[Dict]]] = None,
                 failing: Sequence[str] = (),
                 details: Optional[Dict[str, Dict]] = None):
        self.pages = pages or {}
        self.slices = slices or {}
        self.failing = set(failing)
        self.details = details or {}
        self.detail_calls = []
        self.calls = []
        self._lock = threading.Lock()

    def search_page(self, params=None, page_token=None, page_size=1000):
        params = dict(params or {})
        with self._lock:
            self.calls.append((params, page_token))

        if "countTotal" in params:
            response = self.pages.get(page_token)
            if isinstance(response, list):
                with self._lock:
                    return response.pop(0) if response else None
            return response

        key = params.get("query.cond") or params.get("filter.advanced")
        if key in self.failing:
            raise RuntimeError(f"registry unavailable for {key}")
        return {"studies": list(self.slices.get(key, [])), "nextPageToken": None}

    def get_study_details(self, nct_id):
        with self._lock:
            self.detail_calls.append(nct_id)
        return self.details.get(nct_id)

    @property
    def sweep_keys(self) -> List[str]:
        return [params.get("query.cond") or params.get("filter.advanced")
                for params, _ in self.calls if "countTotal" not in params]


@pytest.fixture
def fake_api_factory():
    return FakeRegistryAPI


@pytest.fixture
def no_wait_limiter() -> RateLimiter:
    return RateLimiter(0)
