# config.py
import os
from pathlib import Path

from dotenv import load_dotenv

from protocol_intelligence.corpus import MIN_COHORT_SIZE as DEFAULT_MIN_COHORT_SIZE

load_dotenv()

# --- File Paths & Directories ---
DATA_ROOT_DIR = Path(os.getenv("PROTOCOL_DATA_DIR", "data"))
CORPUS_OUTPUT_DIR = Path(os.getenv("CORPUS_OUTPUT_DIR", str(DATA_ROOT_DIR / "reference_corpus")))
# Empty means the reference corpus bundled with the package
REFERENCE_CORPUS_PATH = os.getenv("REFERENCE_CORPUS_PATH", "")

REPORT_DIR = "generated_report"

# --- Clinical Trials API ---
CLINICAL_TRIALS_API_URL = os.getenv("CLINICAL_TRIALS_API_URL", "https://clinicaltrials.gov/api/v2")
REQUESTS_TIMEOUT = int(os.getenv("REQUESTS_TIMEOUT", "30"))
API_RATE_LIMIT_DELAY = float(os.getenv("API_RATE_LIMIT_DELAY", "0.05"))

# --- Corpus Collection ---
COLLECTOR_PAGE_SIZE = int(os.getenv("COLLECTOR_PAGE_SIZE", "1000"))
COLLECTOR_CONCURRENCY = int(os.getenv("COLLECTOR_CONCURRENCY", "20"))
COLLECTOR_BATCH_INTERVAL = float(os.getenv("COLLECTOR_BATCH_INTERVAL", "0.1"))
COLLECTOR_MAX_PROTOCOLS = int(os.getenv("COLLECTOR_MAX_PROTOCOLS", "50000"))
COLLECTOR_MAX_CONSECUTIVE_EMPTY = 5
# Sweeps only run while the unique corpus is smaller than these
CONDITION_SWEEP_BELOW = 5000
PHASE_SWEEP_BELOW = 8000
STUDY_TYPE_SWEEP_BELOW = 10000

# --- Benchmarking ---
# Cohorts smaller than this are never reported or benchmarked against
MIN_COHORT_SIZE = int(os.getenv("MIN_COHORT_SIZE", DEFAULT_MIN_COHORT_SIZE))

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(threadName)s] - %(name)s - %(module)s.%(funcName)s - %(message)s"
