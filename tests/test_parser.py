import pytest

from conftest import listing_block, numbered_blocks, results_page
from src.JOBBANK.parser import (
    clean_job_url, clean_salary_text, extract_postings, normalize_province,
    parse_location, parse_posting_date, parse_salary,
)

BASE = "https://www.jobbank.gc.ca"


def test_extracts_one_record_per_block():
    postings = []
    total = extract_postings(results_page(numbered_blocks(1, 7)), BASE, postings)

    assert total == 7
    assert len(postings) == 7
    assert [p.title for p in postings] == [f"Job {i}" for i in range(1, 8)]


def test_extracts_all_fields_from_a_listing():
    postings = []
    extract_postings(results_page([listing_block()]), BASE, postings)

    posting = postings[0]
    assert posting.title == "Cook"
    assert posting.business == "Maple Diner Ltd."
    assert posting.location == "Toronto, Ontario"
    assert posting.city == "Toronto"
    assert posting.province == "ON"
    assert posting.salary == "$17.75 hourly"
    assert (posting.salary_min, posting.salary_max, posting.salary_type) == (17.75, 17.75, "hourly")
    assert posting.date == "October 17, 2025"
    assert posting.posting_date == "2025-10-17"
    assert posting.url == "https://www.jobbank.gc.ca/jobsearch/jobpostingtfw/43123456"
    assert posting.job_bank_id == "43123456"


def test_missing_salary_keeps_the_record():
    postings = []
    extract_postings(results_page([listing_block(salary=None)]), BASE, postings)

    assert len(postings) == 1
    posting = postings[0]
    assert posting.salary == ""
    assert posting.salary_min is None
    assert posting.title == "Cook"
    assert posting.business == "Maple Diner Ltd."
    assert posting.location == "Toronto, Ontario"
    assert posting.date == "October 17, 2025"
    assert posting.url.startswith(BASE)


def test_missing_optional_fields_are_empty():
    postings = []
    html = results_page([listing_block(business=None, location=None, date=None)])
    extract_postings(html, BASE, postings)

    posting = postings[0]
    assert posting.business == ""
    assert posting.location == ""
    assert posting.date == ""
    assert posting.posting_date is None
    assert posting.city is None and posting.province is None


def test_malformed_blocks_are_skipped_not_fatal():
    blocks = [
        listing_block(title="First", href="/jobsearch/jobpostingtfw/1"),
        listing_block(title=None, href="/jobsearch/jobpostingtfw/2"),
        listing_block(title="No link", href=None),
        listing_block(title="Last", href="/jobsearch/jobpostingtfw/4"),
    ]
    postings = []
    total = extract_postings(results_page(blocks), BASE, postings)

    assert total == 4
    assert [p.title for p in postings] == ["First", "Last"]


def test_relative_url_resolves_against_base():
    postings = []
    extract_postings(results_page([listing_block(href="/jobs/123")]), "https://example.com", postings)

    assert postings[0].url == "https://example.com/jobs/123"
    assert postings[0].job_bank_id == "123"


def test_skip_blocks_only_extracts_new_blocks():
    html = results_page(numbered_blocks(1, 5))
    postings = []

    assert extract_postings(html, BASE, postings, skip_blocks=3) == 5
    assert [p.title for p in postings] == ["Job 4", "Job 5"]


def test_appends_to_existing_records():
    postings = []
    extract_postings(results_page(numbered_blocks(1, 2)), BASE, postings)
    extract_postings(results_page(numbered_blocks(3, 2)), BASE, postings)

    assert [p.title for p in postings] == ["Job 1", "Job 2", "Job 3", "Job 4"]


def test_page_without_listings():
    postings = []
    assert extract_postings("<html><body><p>No results</p></body></html>", BASE, postings) == 0
    assert postings == []


@pytest.mark.parametrize("href, expected_url, expected_id", [
    (
        "/jobsearch/jobpostingtfw/43123456;jsessionid=A1B2C3.jobsearch76?source=searchresults",
        "https://www.jobbank.gc.ca/jobsearch/jobpostingtfw/43123456",
        "43123456",
    ),
    (
        "/jobsearch/jobposting/40000001?source=searchresults",
        "https://www.jobbank.gc.ca/jobsearch/jobposting/40000001",
        "40000001",
    ),
    ("/jobsearch/help", "https://www.jobbank.gc.ca/jobsearch/help", None),
    (
        "https://www.jobbank.gc.ca/jobsearch/jobpostingtfw/777",
        "https://www.jobbank.gc.ca/jobsearch/jobpostingtfw/777",
        "777",
    ),
])
def test_clean_job_url(href, expected_url, expected_id):
    assert clean_job_url(href, BASE) == (expected_url, expected_id)


@pytest.mark.parametrize("text, expected", [
    ("$17.75 hourly", (17.75, 17.75, "hourly")),
    ("$25.00 to $30.00 hourly", (25.0, 30.0, "hourly")),
    ("$52,000.00 annually", (52000.0, 52000.0, "yearly")),
    ("$4,000 to $4,500 monthly", (4000.0, 4500.0, "monthly")),
    ("$1,900.00 bi-weekly", (1900.0, 1900.0, "biweekly")),
    ("$800 weekly", (800.0, 800.0, "weekly")),
    ("", (None, None, None)),
    ("Salary not available", (None, None, None)),
])
def test_parse_salary(text, expected):
    assert parse_salary(text) == expected


def test_clean_salary_text_drops_labels():
    assert clean_salary_text("Salary: $20.00 hourly (to be negotiated)") == "$20.00 hourly"
    assert clean_salary_text("  \n$18.50\thourly ") == "$18.50 hourly"


@pytest.mark.parametrize("raw, expected", [
    ("Toronto (ON)", ("Toronto", "ON")),
    ("Gatineau (Québec)", ("Gatineau", "QC")),
    ("Ottawa, Ontario", ("Ottawa", "ON")),
    ("Surrey, BC", ("Surrey", "BC")),
    ("Various locations", ("Various locations", None)),
    ("Springfield (Atlantis)", ("Springfield", "Atlantis")),
    ("", (None, None)),
])
def test_parse_location(raw, expected):
    assert parse_location(raw) == expected


def test_normalize_province():
    assert normalize_province("nova scotia") == "NS"
    assert normalize_province("yt") == "YT"
    assert normalize_province("Colombie-Britannique") == "BC"
    assert normalize_province("Narnia") is None


def test_parse_posting_date():
    assert parse_posting_date("October 17, 2025") == "2025-10-17"
    assert parse_posting_date("2025-01-02") == "2025-01-02"
    assert parse_posting_date("") is None
    assert parse_posting_date("unknown") is None
