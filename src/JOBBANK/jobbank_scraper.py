"""
Job Bank (jobbank.gc.ca) Scraper

Loads the Job Bank search page with Playwright, applies the optional title and
province filters, keeps clicking "More results" until the listing runs out or
the page bound is reached, then extracts every listing block into JobPosting
records and hands them to the enabled outputs (JSON file, Supabase).

This is a synchronous, single-threaded implementation: one browser page is
owned by the run for its whole duration.
"""

import json
import logging
from collections import Counter
from dataclasses import asdict
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Callable, List, Optional

from playwright.sync_api import sync_playwright, Page, Error as PlaywrightError, TimeoutError as PWTimeout

from src.JOBBANK import config
from src.JOBBANK.models import (
    Bounded, BrowserError, JobPosting, LoadResult, LoadMoreError, PageLimit, RemoteServiceError,
    ScrapeResult, ScrapeSettings, SearchPageError, Unbounded, describe_page_limit
)
from src.JOBBANK.parser import extract_postings
from src.JOBBANK.upload_to_supabase import SupabaseUploader


# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================

def setup_logging() -> logging.Logger:
    """
    Configure logging to write to both console and rotating file.

    Returns:
        Logger instance configured for the scraper.
    """
    logger = logging.getLogger("src.JOBBANK")
    logger.setLevel(logging.INFO)

    # Prevent duplicate handlers if function is called multiple times
    if logger.handlers:
        return logger

    config.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    log_file = config.LOGS_DIR / "jobbank_scraper.log"

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Rotating file handler (max 10MB, keep 5 backups)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger


logger = setup_logging()


# ============================================================================
# PAGE LOADER
# ============================================================================

def describe_search(job_title: str, province: str) -> str:
    """Human-readable description of the search filters."""
    if job_title:
        where = f"in {province}" if province else "in all of Canada"
        return f"Searching for {job_title} jobs {where} 🇨🇦🍁"
    if province:
        return f"Searching for all jobs in {province} 🇨🇦🍁"
    return "Searching for all jobs in Canada 🇨🇦🍁"


def read_results_count(page: Page) -> Optional[str]:
    """Total results as shown on the page, if the counter is present."""
    counter = page.locator(config.RESULTS_COUNT)
    if counter.count() == 0:
        return None
    text = counter.first.text_content()
    return text.strip() if text else None


def open_search(page: Page, url: str, job_title: str = "", province: str = "", delay_ms: int = config.DEFAULT_DELAY_MS) -> None:
    """
    Load the search page, apply filters and wait for the first results.

    Args:
        page: Playwright page object
        url: Search page URL
        job_title: Title filter, empty for all titles
        province: Province filter, empty for all provinces
        delay_ms: Per-step delay

    Raises:
        SearchPageError: If navigation fails or no results render in time
    """
    logger.info(f"🎯 Navigating to {url}")
    try:
        page.goto(url, wait_until="domcontentloaded", timeout=config.NAVIGATION_TIMEOUT)

        if job_title or province:
            page.fill(config.PROVINCE_INPUT, province)
            page.fill(config.TITLE_INPUT, job_title)
            logger.info(describe_search(job_title, province))
            page.wait_for_timeout(delay_ms * config.FILTER_SETTLE_FACTOR)
            page.click(config.SEARCH_BUTTON)
        else:
            logger.info(describe_search(job_title, province))

        page.wait_for_selector(
            f"{config.LISTING_BLOCK}, {config.LOAD_MORE_BUTTON}",
            timeout=config.RESULTS_TIMEOUT
        )
        total = read_results_count(page)
    except PWTimeout as e:
        raise SearchPageError(f"Search results did not load from {url}: {e}") from e
    except PlaywrightError as e:
        raise SearchPageError(f"Failed to open search page {url}: {e}") from e

    if total:
        logger.info(f"📊 Total jobs to scrape: {total}")


def click_load_more(page: Page, delay_ms: int, attempts: int = config.CLICK_ATTEMPTS) -> None:
    """
    Click the load-more control, retrying with exponential backoff.

    Raises:
        LoadMoreError: If every attempt fails
    """
    for attempt in range(1, attempts + 1):
        try:
            page.locator(config.LOAD_MORE_BUTTON).first.click(timeout=config.CLICK_TIMEOUT)
            return
        except PlaywrightError as e:
            if attempt == attempts:
                raise LoadMoreError(f"Could not click load-more after {attempts} attempts: {e}") from e
            backoff = delay_ms * 2 ** (attempt - 1)
            logger.warning(f"⚠️  Load-more click failed (attempt {attempt}/{attempts}), retrying in {backoff}ms: {e}")
            page.wait_for_timeout(backoff)


def load_more_pages(
    page: Page,
    page_limit: PageLimit,
    delay_ms: int,
    on_load: Optional[Callable[[int], None]] = None,
) -> LoadResult:
    """
    Keep activating the load-more control until it disappears or the bound is reached.

    Args:
        page: Playwright page object with search results loaded
        page_limit: Bounded(n) or Unbounded
        delay_ms: Fixed delay before each check and after each click
        on_load: Called with the running load count after each successful click

    Returns:
        LoadResult with the number of loads performed
    """
    result = LoadResult()

    while True:
        if isinstance(page_limit, Bounded) and result.pages_loaded >= page_limit.pages:
            break

        page.wait_for_timeout(delay_ms)
        try:
            button = page.locator(config.LOAD_MORE_BUTTON)
            present = button.count() > 0
            visible = present and button.first.is_visible()
        except PlaywrightError as e:
            raise LoadMoreError(f"Could not check the load-more control: {e}") from e

        if not visible:
            reason = "More button not visible" if present else "No more results"
            logger.info(f"{reason} after {result.pages_loaded} pages 😔")
            result.exhausted = True
            # let the last appended page finish rendering
            page.wait_for_timeout(delay_ms * config.EXHAUSTED_SETTLE_FACTOR)
            break

        click_load_more(page, delay_ms)
        result.pages_loaded += 1

        if isinstance(page_limit, Unbounded):
            logger.info(f"{result.pages_loaded} 📄(s) loaded (scraping all pages...)")
        else:
            logger.info(f"{result.pages_loaded} 📄(s) loaded out of {page_limit.pages}")

        page.wait_for_timeout(delay_ms)

        if on_load is not None:
            on_load(result.pages_loaded)

    if result.exhausted:
        logger.info("Finished loading all available pages")
    return result


def scrape_page(page: Page, settings: ScrapeSettings) -> ScrapeResult:
    """
    Run the page loader and extractor on an open page.

    Postings are extracted once after the last load, or after every load
    when settings.extract_each_load is set.
    """
    postings: List[JobPosting] = []
    blocks_seen = 0

    open_search(
        page,
        config.search_url(settings.lmia_only),
        job_title=settings.job_title,
        province=settings.province,
        delay_ms=settings.delay_ms,
    )

    def extract_new(_loads: int = 0) -> None:
        nonlocal blocks_seen
        blocks_seen = extract_postings(page.content(), config.BASE_URL, postings, skip_blocks=blocks_seen)

    if settings.extract_each_load:
        extract_new()
        load_result = load_more_pages(page, settings.page_limit, settings.delay_ms, on_load=extract_new)
        if load_result.exhausted:
            extract_new()
    else:
        load_result = load_more_pages(page, settings.page_limit, settings.delay_ms)
        extract_new()

    logger.info(f"Scraped {len(postings)} jobs from the page")
    return ScrapeResult(
        postings=postings,
        pages_loaded=load_result.pages_loaded,
        exhausted=load_result.exhausted,
    )


# ============================================================================
# OUTPUTS
# ============================================================================

def save_jobs_json(postings: List[JobPosting], output_dir: Path) -> Path:
    """
    Save the whole run's postings to a timestamped JSON file.

    Returns:
        Path to the written file
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    filepath = output_dir / f"jobs_{timestamp}.json"

    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump([asdict(p) for p in postings], f, indent=2, ensure_ascii=False)

    logger.info(f"💾 Results saved to {filepath}")
    return filepath


def log_summary(postings: List[JobPosting], top_employers: int = 10) -> None:
    """Log totals, counts per location and the busiest employers."""
    logger.info("=" * 80)
    logger.info("SCRAPING SUMMARY")
    logger.info("=" * 80)
    logger.info(f"📊 Total jobs scraped: {len(postings)}")

    locations = Counter(p.location for p in postings if p.location)
    if locations:
        logger.info("📍 Jobs by location:")
        for location, count in locations.most_common():
            logger.info(f"   {location}: {count} jobs")

    employers = Counter(p.business for p in postings if p.business)
    if employers:
        logger.info("🏢 Top employers:")
        for business, count in employers.most_common(top_employers):
            logger.info(f"   {business}: {count} jobs")


def deliver_results(result: ScrapeResult, settings: ScrapeSettings, uploader: Optional[SupabaseUploader]) -> None:
    """
    Hand the postings to each enabled output, once each.

    The JSON file is written before the remote upload so a local copy
    survives a remote failure.
    """
    if settings.save_to_json:
        result.json_path = save_jobs_json(result.postings, settings.output_dir or config.JSON_DIR)

    if settings.save_to_remote and uploader is not None:
        result.jobs_stored = uploader.submit_jobs(result.postings, lmia=settings.lmia_only)
        walked_everything = (
            isinstance(settings.page_limit, Unbounded) and result.exhausted and not settings.is_filtered
        )
        if walked_everything and result.postings:
            result.pruned = uploader.prune_missing_postings(lmia=settings.lmia_only)
        elif walked_everything:
            logger.warning("⚠️  Full listing yielded no postings, keeping existing Supabase rows")
        uploader.complete_scraping_run(result.pages_loaded, len(result.postings), result.jobs_stored)


# ============================================================================
# RUN
# ============================================================================

def scrape_with_browser(settings: ScrapeSettings) -> ScrapeResult:
    """
    Launch Chromium, scrape on a fresh page and close the browser.

    Raises:
        BrowserError: If Playwright fails outside the search and load-more steps
    """
    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(headless=settings.headless)
            try:
                context = browser.new_context(
                    user_agent=config.USER_AGENT,
                    viewport={'width': 1920, 'height': 1080}
                )
                return scrape_page(context.new_page(), settings)
            finally:
                browser.close()
                logger.info("Browser closed 👋")
    except PlaywrightError as e:
        raise BrowserError(f"Browser automation failed: {e}") from e


def run_scrape(
    settings: ScrapeSettings,
    page: Optional[Page] = None,
    uploader: Optional[SupabaseUploader] = None,
) -> ScrapeResult:
    """
    Execute one scrape run from page load to record handoff.

    Args:
        settings: Run settings
        page: Already open page to use; a headless Chromium page is launched if None
        uploader: Supabase uploader; built from the environment when remote saving is on

    Returns:
        ScrapeResult with the postings and output details

    Raises:
        SearchPageError, LoadMoreError, BrowserError: Browser automation failures
        RemoteServiceError: Supabase failures when remote saving is enabled
    """
    started_at = datetime.now().isoformat()

    logger.info("=" * 80)
    logger.info("🇨🇦🍁 Job Bank Scraper - Starting...")
    logger.info("=" * 80)
    logger.info(f"Job title: {settings.job_title or '(all)'}")
    logger.info(f"Province: {settings.province or '(all)'}")
    logger.info(f"Pages: {describe_page_limit(settings.page_limit)}")
    logger.info(f"Delay: {settings.delay_ms}ms")
    logger.info(f"Save to JSON: {settings.save_to_json}")
    logger.info(f"Save to Supabase: {settings.save_to_remote}")

    if settings.save_to_remote:
        uploader = uploader or SupabaseUploader.from_env()
        if not uploader.test_connection():
            raise RemoteServiceError("Supabase connection failed")
        uploader.start_scraping_run()
    else:
        uploader = None

    try:
        if page is not None:
            result = scrape_page(page, settings)
        else:
            result = scrape_with_browser(settings)

        result.started_at = started_at
        if uploader is not None:
            result.run_id = uploader.run.id

        log_summary(result.postings)
        deliver_results(result, settings, uploader)
    except Exception as e:
        if uploader is not None:
            uploader.fail_scraping_run(str(e))
        raise

    result.finished_at = datetime.now().isoformat()
    logger.info("✅ Scraping completed successfully!")
    return result


def main():
    """Run with settings from the environment (.env)."""
    run_scrape(config.load_settings())


if __name__ == "__main__":
    main()
