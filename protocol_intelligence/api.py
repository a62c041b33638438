#!/usr/bin/env python3
"""
ClinicalTrials.gov API Interface

Thin client for the ClinicalTrials.gov API v2 used to harvest the reference
corpus. Every request waits on a shared RateLimiter.
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000


class RateLimiter:
    """
    Fixed-interval gate shared between threads.

    ``acquire()`` returns once at least ``interval`` seconds have passed since
    the previous grant. The clock and sleep functions can be swapped for
    fakes in tests.
    """

    def __init__(self, interval: float,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_grant: Optional[float] = None

    def acquire(self) -> float:
        """Block until the next slot; returns the seconds spent waiting."""
        with self._lock:
            waited = 0.0
            now = self._clock()
            if self._last_grant is not None:
                remaining = self.interval - (now - self._last_grant)
                if remaining > 0:
                    self._sleep(remaining)
                    waited = remaining
                    now = self._clock()
            self._last_grant = now
            return waited


class ClinicalTrialsAPI:
    """Interface to ClinicalTrials.gov API v2."""

    BASE_URL = "https://clinicaltrials.gov/api/v2"

    def __init__(self, rate_limit_delay: float = 1.0,
                 rate_limiter: Optional[RateLimiter] = None,
                 base_url: Optional[str] = None,
                 timeout: int = 30):
        self.rate_limiter = rate_limiter or RateLimiter(rate_limit_delay)
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout

    def search_page(self, params: Optional[Dict] = None,
                    page_token: Optional[str] = None,
                    page_size: int = 1000) -> Optional[Dict]:
        """
        Fetch one page of studies.

        Args:
            params: Query parameters such as ``query.cond`` or ``filter.advanced``
            page_token: Cursor returned as ``nextPageToken`` by the previous page
            page_size: Studies per page (capped at MAX_PAGE_SIZE)

        Returns:
            ``{"studies": [...], "nextPageToken": ...}`` or None if the request failed
        """
        query = dict(params or {})
        query["format"] = "json"
        query["pageSize"] = min(page_size, MAX_PAGE_SIZE)
        if page_token:
            query["pageToken"] = page_token

        self.rate_limiter.acquire()
        try:
            response = requests.get(f"{self.base_url}/studies", params=query, timeout=self.timeout)
            logger.debug(f"Request URL: {response.url}")
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Error fetching studies page ({params}): {e}")
            return None
        except ValueError as e:
            logger.error(f"Invalid JSON in studies page ({params}): {e}")
            return None

        return {
            "studies": data.get("studies", []),
            "nextPageToken": data.get("nextPageToken"),
        }

    def search_studies(self,
                       condition: Optional[str] = None,
                       phase: Optional[str] = None,
                       study_type: Optional[str] = None,
                       query_term: Optional[str] = None,
                       max_results: int = 100) -> List[Dict]:
        """
        Search for studies (single page).

        Args:
            condition: Medical condition (e.g., "breast cancer")
            phase: Registry phase code (e.g., "PHASE2")
            study_type: Registry study type (e.g., "INTERVENTIONAL")
            query_term: Free-text query
            max_results: Maximum number of results to return

        Returns:
            List of study dictionaries
        """
        params = {}
        if condition:
            params["query.cond"] = condition
        if query_term:
            params["query.term"] = query_term
        advanced = []
        if phase:
            advanced.append(f"AREA[Phase]{phase}")
        if study_type:
            advanced.append(f"AREA[StudyType]{study_type}")
        if advanced:
            params["filter.advanced"] = " AND ".join(advanced)

        logger.info(f"Searching studies with {params}")
        page = self.search_page(params, page_size=max_results)
        if page is None:
            return []
        studies = page["studies"]
        logger.info(f"Found {len(studies)} studies")
        return studies

    def get_study_details(self, nct_id: str) -> Optional[Dict]:
        """Get the full record for a specific study."""
        self.rate_limiter.acquire()
        try:
            response = requests.get(f"{self.base_url}/studies/{nct_id}",
                                    params={"format": "json"},
                                    timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Error getting study details for {nct_id}: {e}")
            return None
        except ValueError as e:
            logger.error(f"Invalid JSON for study {nct_id}: {e}")
            return None


def test_api_connection(api: Optional[ClinicalTrialsAPI] = None) -> bool:
    """Test if the ClinicalTrials.gov API is working."""
    api = api or ClinicalTrialsAPI(rate_limit_delay=1.0)

    print("Testing ClinicalTrials.gov API connection...")
    studies = api.search_studies(condition="cancer", max_results=5)

    if studies:
        print(f"API connection successful! Found {len(studies)} studies for 'cancer'")
        identification = studies[0].get("protocolSection", {}).get("identificationModule", {})
        print(f"Example study: {identification.get('briefTitle', 'No title')}")
        print(f"NCT ID: {identification.get('nctId', 'No ID')}")
        return True

    print("API connection failed!")
    return False
