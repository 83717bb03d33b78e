"""
Configuration for the Job Bank (jobbank.gc.ca) scraper
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from src.JOBBANK.models import ScrapeSettings, page_limit_from_text

PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")

# Base URLs
BASE_URL = "https://www.jobbank.gc.ca"
SEARCH_URL = f"{BASE_URL}/jobsearch/jobsearch"
LMIA_URL = f"{SEARCH_URL}?fsrc=32"  # LMIA-flagged postings only

# Search form
TITLE_INPUT = "#searchString"
PROVINCE_INPUT = "#locationstring"
SEARCH_BUTTON = "#searchButton"
RESULTS_COUNT = "#results-count"
LOAD_MORE_BUTTON = "#moreresultbutton"

# Listing blocks
LISTING_BLOCK = "article"
TITLE_SELECTOR = ".noctitle"
LINK_SELECTORS = ("a.resultJobItem", "a[href]")
HIDDEN_LABEL_SELECTOR = ".wb-inv"  # screen-reader labels like "Location", "Salary:"
FIELD_SELECTORS = {
    "business": ".list-unstyled .business",
    "location": ".list-unstyled .location",
    "salary": ".list-unstyled .salary",
    "date": ".list-unstyled .date",
}

# Playwright settings (milliseconds)
NAVIGATION_TIMEOUT = 60000
RESULTS_TIMEOUT = 15000
CLICK_TIMEOUT = 10000
USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"

# Pagination
DEFAULT_DELAY_MS = 1000
FILTER_SETTLE_FACTOR = 4  # wait after typing filters, in delays
EXHAUSTED_SETTLE_FACTOR = 7  # wait after the last page, in delays
CLICK_ATTEMPTS = 3

# Remote upload
UPLOAD_BATCH_SIZE = 500
POSTINGS_TABLE = "job_postings"
RUNS_TABLE = "job_scraping_runs"

# Data directories
DATA_DIR = PROJECT_ROOT / "data" / "JOBBANK"
JSON_DIR = DATA_DIR / "jobs_json"
LOGS_DIR = PROJECT_ROOT / "logs" / "JOBBANK"

SCRAPER_VERSION = "1.0.0"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def env_flag(name: str, default: bool) -> bool:
    """Read a boolean environment variable."""
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")


def env_int(name: str, default: int) -> int:
    """Read a non-negative integer environment variable."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")
    return value


def load_settings(output_dir: Optional[Path] = None) -> ScrapeSettings:
    """
    Build run settings from the environment (and .env).

    Raises:
        ValueError: If any JOBBANK_* variable is malformed
    """
    pages_raw = os.getenv("JOBBANK_PAGES", "-1")
    try:
        page_limit = page_limit_from_text(pages_raw)
    except ValueError as e:
        raise ValueError(f"JOBBANK_PAGES: {e}") from None

    return ScrapeSettings(
        job_title=os.getenv("JOBBANK_JOB_TITLE", "").strip(),
        province=os.getenv("JOBBANK_PROVINCE", "").strip(),
        page_limit=page_limit,
        delay_ms=env_int("JOBBANK_DELAY_MS", DEFAULT_DELAY_MS),
        save_to_json=env_flag("JOBBANK_SAVE_JSON", False),
        save_to_remote=env_flag("JOBBANK_SAVE_REMOTE", False),
        headless=env_flag("JOBBANK_HEADLESS", True),
        lmia_only=env_flag("JOBBANK_LMIA_ONLY", True),
        extract_each_load=env_flag("JOBBANK_EXTRACT_EACH_LOAD", False),
        output_dir=output_dir or JSON_DIR,
    )


def search_url(lmia_only: bool) -> str:
    """Entry URL for a run."""
    return LMIA_URL if lmia_only else SEARCH_URL
