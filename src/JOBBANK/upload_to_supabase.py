"""
Upload Job Bank postings to Supabase

Used by the scraper at the end of a run (when remote saving is enabled), and
as a standalone script that re-uploads a saved jobs JSON file:

    python -m src.JOBBANK.upload_to_supabase data/JOBBANK/jobs_json/jobs_<ts>.json [--dry-run]
"""

import json
import logging
import os
import uuid
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from supabase import create_client, Client

from src.JOBBANK import config
from src.JOBBANK.models import JobPosting, RemoteServiceError, ScrapingRun

logger = logging.getLogger(__name__)


def get_supabase_client() -> Client:
    """
    Create and return a Supabase client.

    Returns:
        Supabase client instance

    Raises:
        ValueError: If credentials are not set
    """
    supabase_url = os.getenv("SUPABASE_URL")
    # Check for SUPABASE_KEY first, then fall back to the role-specific keys
    supabase_key = (
        os.getenv("SUPABASE_KEY")
        or os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        or os.getenv("SUPABASE_ANON_KEY")
    )
    if not supabase_url or not supabase_key:
        raise ValueError(
            "Supabase credentials not found. Please set SUPABASE_URL and SUPABASE_KEY "
            "environment variables.\n\n"
            "Example:\n"
            "export SUPABASE_URL='https://your-project.supabase.co'\n"
            "export SUPABASE_KEY='your-service-role-key'\n"
        )

    return create_client(supabase_url, supabase_key)


def truncate(value: Optional[str], max_length: int) -> Optional[str]:
    if value is None:
        return None
    return value[:max_length]


def transform_posting(posting: JobPosting, run_id: str, lmia: bool = True) -> Dict[str, Any]:
    """
    Flatten a posting into a job_postings row.

    Args:
        posting: Extracted posting
        run_id: Scraping run the row is refreshed by
        lmia: Whether the run only covered LMIA-flagged postings
    """
    return {
        "job_bank_id": posting.job_bank_id,
        "title": truncate(posting.title, 500),
        "employer": truncate(posting.business, 500),
        "location": truncate(posting.location, 200),
        "city": truncate(posting.city, 150),
        "province": posting.province,
        "salary_raw": posting.salary or None,
        "salary_min": posting.salary_min,
        "salary_max": posting.salary_max,
        "salary_type": posting.salary_type,
        "posting_date": posting.posting_date,
        "url": posting.url,
        "is_tfw": lmia,
        "has_lmia": lmia,
        "scraping_run_id": run_id,
        "scraped_at": posting.scraped_at,
        "updated_at": datetime.now().isoformat(),
    }


def dedupe_by_url(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep the last row per URL; one upsert batch can't touch a row twice."""
    by_url: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        by_url.pop(row["url"], None)
        by_url[row["url"]] = row
    return list(by_url.values())


class SupabaseUploader:
    """Records a scraping run and its postings in Supabase."""

    def __init__(self, client: Client, batch_size: int = config.UPLOAD_BATCH_SIZE):
        self.client = client
        self.batch_size = batch_size
        self.run: Optional[ScrapingRun] = None
        self.jobs_submitted = 0  # rows stored for the current run

    @classmethod
    def from_env(cls) -> "SupabaseUploader":
        return cls(get_supabase_client())

    def _execute(self, action: str, query):
        try:
            return query.execute()
        except Exception as e:
            raise RemoteServiceError(f"Failed to {action}: {e}") from e

    def _require_run(self) -> ScrapingRun:
        if self.run is None:
            raise RemoteServiceError("No active scraping run. Call start_scraping_run() first.")
        return self.run

    def test_connection(self) -> bool:
        logger.info("🔗 Testing Supabase connection...")
        try:
            self.client.table(config.POSTINGS_TABLE).select("id").limit(1).execute()
        except Exception as e:
            logger.error(f"❌ Supabase connection failed: {e}")
            return False
        logger.info("✅ Supabase connection successful")
        return True

    def start_scraping_run(self) -> str:
        run = ScrapingRun(id=str(uuid.uuid4()))
        logger.info("🚀 Starting new scraping run...")
        self._execute("start scraping run", self.client.table(config.RUNS_TABLE).insert(asdict(run)))
        self.run = run
        self.jobs_submitted = 0
        logger.info(f"✅ Scraping run started: {run.id}")
        return run.id

    def submit_jobs(self, postings: List[JobPosting], lmia: bool = True) -> int:
        """
        Upsert postings in batches.

        Returns:
            Number of rows stored
        """
        run = self._require_run()

        if not postings:
            logger.info("⚠️  No jobs to submit")
            return 0

        rows = dedupe_by_url([transform_posting(p, run.id, lmia) for p in postings])
        if len(rows) < len(postings):
            logger.info(f"Dropped {len(postings) - len(rows)} duplicate posting URLs")

        logger.info(f"📤 Submitting {len(rows)} jobs in batches of {self.batch_size}...")
        stored = 0
        for start in range(0, len(rows), self.batch_size):
            batch = rows[start:start + self.batch_size]
            batch_number = start // self.batch_size + 1
            response = self._execute(
                f"submit batch {batch_number}",
                self.client.table(config.POSTINGS_TABLE).upsert(batch, on_conflict="url"),
            )
            stored += len(response.data) if response.data else len(batch)
            logger.info(f"✅ Batch {batch_number}: {len(batch)} jobs ({stored}/{len(rows)} total)")

        self.jobs_submitted += stored
        return stored

    def prune_missing_postings(self, lmia: bool = True) -> int:
        """
        Delete scraped postings that this run did not refresh.

        Only rows carrying a Job Bank id are touched, so manually added
        postings survive. An LMIA run only prunes LMIA rows.

        Returns:
            Number of rows deleted (0 when this run stored nothing)
        """
        run = self._require_run()
        if self.jobs_submitted == 0:
            logger.warning("⚠️  No postings stored in this run, skipping prune")
            return 0

        query = (
            self.client.table(config.POSTINGS_TABLE)
            .delete()
            .neq("scraping_run_id", run.id)
            .not_.is_("job_bank_id", "null")
        )
        if lmia:
            query = query.eq("is_tfw", True).eq("has_lmia", True)
        response = self._execute("prune postings", query)
        deleted = len(response.data or [])
        logger.info(f"🧹 Removed {deleted} postings no longer listed")
        return deleted

    def complete_scraping_run(self, total_pages: int, jobs_scraped: int, jobs_stored: int) -> None:
        run = self._require_run()
        run.status = "completed"
        run.completed_at = datetime.now().isoformat()
        run.total_pages = total_pages
        run.jobs_scraped = jobs_scraped
        run.jobs_stored = jobs_stored
        self._execute(
            "complete scraping run",
            self.client.table(config.RUNS_TABLE).update({
                "status": run.status,
                "completed_at": run.completed_at,
                "total_pages": total_pages,
                "jobs_scraped": jobs_scraped,
                "jobs_stored": jobs_stored,
            }).eq("id", run.id),
        )
        logger.info("🏁 Scraping run completed")

    def fail_scraping_run(self, error_message: str) -> None:
        """Mark the run failed. Errors here are logged; the caller is already failing."""
        if self.run is None:
            return
        self.run.status = "failed"
        self.run.error_message = error_message
        try:
            self.client.table(config.RUNS_TABLE).update({
                "status": "failed",
                "completed_at": datetime.now().isoformat(),
                "error_message": error_message,
            }).eq("id", self.run.id).execute()
        except Exception as e:
            logger.error(f"Failed to update scraping run status: {e}")


def load_postings_from_file(filepath: Path) -> List[JobPosting]:
    """Load postings saved by the scraper's JSON writer."""
    with open(filepath, 'r', encoding='utf-8') as f:
        items = json.load(f)
    return [JobPosting(**item) for item in items]


def upload_file(filepath: Path, dry_run: bool = False, uploader: Optional[SupabaseUploader] = None) -> int:
    """
    Upload a saved jobs JSON file as a new scraping run.

    Returns:
        Number of rows stored (or validated, in dry-run mode)
    """
    print("=" * 60)
    print("Job Bank Uploader")
    print("=" * 60)
    print(f"File: {filepath}")
    print(f"Dry run: {dry_run}")
    print()

    postings = load_postings_from_file(filepath)
    print(f"📊 Found {len(postings)} postings")

    if dry_run:
        for i, posting in enumerate(postings, 1):
            print(f"[{i}/{len(postings)}] ✓ Validated: {posting.title[:50]} ({posting.url})")
        return len(postings)

    uploader = uploader or SupabaseUploader.from_env()
    uploader.start_scraping_run()
    try:
        stored = uploader.submit_jobs(postings)
        uploader.complete_scraping_run(0, len(postings), stored)
    except RemoteServiceError as e:
        uploader.fail_scraping_run(str(e))
        raise

    print()
    print(f"✅ Uploaded {stored}/{len(postings)} postings")
    return stored


def main(argv: Optional[List[str]] = None) -> int:
    import argparse

    parser = argparse.ArgumentParser(description="Upload a saved Job Bank JSON file to Supabase")
    parser.add_argument("file", type=Path, help="jobs_<timestamp>.json written by the scraper")
    parser.add_argument("--dry-run", action="store_true", help="Validate the file without uploading")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s: %(message)s")

    try:
        upload_file(args.file, dry_run=args.dry_run)
    except (ValueError, RemoteServiceError) as e:
        print(f"❌ {e}")
        return 1
    return 0


if __name__ == "__main__":
    import sys

    sys.exit(main())
