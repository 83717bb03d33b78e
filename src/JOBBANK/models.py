"""
Data models for Job Bank (jobbank.gc.ca) job postings
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union


@dataclass
class JobPosting:
    """One posting extracted from a search results listing block"""

    title: str
    url: str
    business: str = ""
    salary: str = ""
    location: str = ""
    date: str = ""

    # External identifier from the posting URL
    job_bank_id: Optional[str] = None

    # Parsed location
    city: Optional[str] = None
    province: Optional[str] = None  # two-letter code, e.g. "ON"

    # Parsed salary
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_type: Optional[str] = None  # hourly, weekly, biweekly, monthly, yearly

    # Parsed posting date (YYYY-MM-DD)
    posting_date: Optional[str] = None

    scraped_at: str = field(default_factory=lambda: datetime.now().isoformat())


@dataclass(frozen=True)
class Bounded:
    """Load at most `pages` additional result pages."""

    pages: int

    def __post_init__(self):
        if self.pages < 0:
            raise ValueError(f"page bound must be >= 0, got {self.pages}")


@dataclass(frozen=True)
class Unbounded:
    """Keep loading until the listing runs out."""


PageLimit = Union[Bounded, Unbounded]
UNBOUNDED = Unbounded()

UNBOUNDED_WORDS = {"all", "unbounded"}


def page_limit_from_int(value: int) -> PageLimit:
    """
    Convert the legacy integer form, where -1 means "all pages".

    Zero is a real bound (no load-more clicks), not "unbounded".
    """
    if value == -1:
        return UNBOUNDED
    if value < 0:
        raise ValueError(f"page count must be -1 (all) or >= 0, got {value}")
    return Bounded(value)


def page_limit_from_text(text: str) -> PageLimit:
    """Parse a page limit from CLI/env text: an integer, 'all' or 'unbounded'."""
    value = text.strip().lower()
    if value in UNBOUNDED_WORDS:
        return UNBOUNDED
    try:
        number = int(value)
    except ValueError:
        raise ValueError(f"expected an integer, 'all' or 'unbounded', got {text!r}") from None
    return page_limit_from_int(number)


def describe_page_limit(limit: PageLimit) -> str:
    if isinstance(limit, Bounded):
        return str(limit.pages)
    return "all"


@dataclass
class ScrapeSettings:
    """Inputs for one scrape run"""

    job_title: str = ""  # empty = all job titles
    province: str = ""  # empty = all provinces
    page_limit: PageLimit = UNBOUNDED
    delay_ms: int = 1000
    save_to_json: bool = False
    save_to_remote: bool = False
    headless: bool = True
    lmia_only: bool = True
    extract_each_load: bool = False
    output_dir: Optional[Path] = None

    @property
    def is_filtered(self) -> bool:
        return bool(self.job_title or self.province)


@dataclass
class LoadResult:
    """What the page loader did"""

    pages_loaded: int = 0
    exhausted: bool = False  # load-more control disappeared


@dataclass
class ScrapeResult:
    """Outcome of a run, handed back to the caller"""

    postings: List[JobPosting] = field(default_factory=list)
    pages_loaded: int = 0
    exhausted: bool = False
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    finished_at: Optional[str] = None
    run_id: Optional[str] = None
    json_path: Optional[Path] = None
    jobs_stored: int = 0
    pruned: int = 0


@dataclass
class ScrapingRun:
    """Bookkeeping row for a run recorded in the remote service"""

    id: str
    status: str = "running"  # running, completed, failed
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_at: Optional[str] = None
    error_message: Optional[str] = None
    total_pages: int = 0
    jobs_scraped: int = 0
    jobs_stored: int = 0


class JobBankScrapeError(Exception):
    """Base exception for scrape run failures."""


class BrowserError(JobBankScrapeError):
    """The browser could not be launched or stopped responding."""


class SearchPageError(JobBankScrapeError):
    """Search page failed to load or never rendered any results."""


class LoadMoreError(JobBankScrapeError):
    """The load-more control could not be activated."""


class RemoteServiceError(JobBankScrapeError):
    """The remote persistence service rejected or failed a request."""
