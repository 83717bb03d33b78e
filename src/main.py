"""
Command-line entry point for the Job Bank scraper.

Settings come from the environment (.env) and can be overridden per run with
the flags below.
"""

import sys
import time
from typing import List, Optional

from playwright.sync_api import Error as PlaywrightError

from src.JOBBANK import config
from src.JOBBANK.jobbank_scraper import logger, run_scrape
from src.JOBBANK.models import JobBankScrapeError, ScrapeSettings, page_limit_from_text


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        description='Scrape job postings from the Job Bank search results',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scrape every LMIA posting and save to a JSON file
  python -m src.main --save-json

  # Load 5 extra pages of cook postings in Ontario
  python -m src.main --title cook --province Ontario --pages 5

  # Full run, saved locally and to Supabase
  python -m src.main --pages all --save-json --save-remote
        """
    )

    parser.add_argument('--title', '-t', help='Job title filter (default: all titles)')
    parser.add_argument('--province', '-p', help='Province filter (default: all provinces)')
    parser.add_argument(
        '--pages', '-n',
        help="Extra result pages to load: a number, or 'all' until the listing runs out"
    )
    parser.add_argument('--delay-ms', type=int, help='Delay between page interactions in milliseconds')
    parser.add_argument('--save-json', action='store_true', default=None, help='Write results to a JSON file')
    parser.add_argument('--save-remote', action='store_true', default=None, help='Upload results to Supabase')
    parser.add_argument('--all-jobs', action='store_true', help='Search all postings, not only LMIA-flagged ones')
    parser.add_argument('--each-load', action='store_true', help='Extract postings after every page load')
    parser.add_argument('--headed', action='store_true', help='Show the browser window')

    return parser


def settings_from_args(argv: Optional[List[str]] = None) -> ScrapeSettings:
    """
    Merge CLI flags over the environment settings.

    Raises:
        SystemExit: On invalid arguments (via argparse)
        ValueError: On malformed environment values
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = config.load_settings()

    if args.title is not None:
        settings.job_title = args.title.strip()
    if args.province is not None:
        settings.province = args.province.strip()
    if args.pages is not None:
        try:
            settings.page_limit = page_limit_from_text(args.pages)
        except ValueError as e:
            parser.error(f"--pages: {e}")
    if args.delay_ms is not None:
        if args.delay_ms < 0:
            parser.error("--delay-ms must not be negative")
        settings.delay_ms = args.delay_ms
    if args.save_json:
        settings.save_to_json = True
    if args.save_remote:
        settings.save_to_remote = True
    if args.all_jobs:
        settings.lmia_only = False
    if args.each_load:
        settings.extract_each_load = True
    if args.headed:
        settings.headless = False

    return settings


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with command-line argument handling."""
    try:
        settings = settings_from_args(argv)
    except ValueError as e:
        logger.error(f"✗ Invalid configuration: {e}")
        return 1

    start_time = time.time()
    try:
        result = run_scrape(settings)
    except (JobBankScrapeError, PlaywrightError, ValueError) as e:
        logger.error(f"✗ Scraper failed: {e}")
        return 1

    elapsed_time = time.time() - start_time
    logger.info(f"  Jobs scraped: {len(result.postings)}")
    logger.info(f"  Pages loaded: {result.pages_loaded}")
    if result.json_path:
        logger.info(f"  JSON file: {result.json_path}")
    if result.run_id:
        logger.info(f"  Scraping run: {result.run_id} ({result.jobs_stored} stored)")
    logger.info(f"  Time taken: {elapsed_time/60:.1f} minutes")
    return 0


if __name__ == "__main__":
    sys.exit(main())
