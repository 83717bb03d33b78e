"""
Parser for Job Bank (jobbank.gc.ca) search results

Extracts one JobPosting per listing block from the rendered results page and
normalises the free-text fields (salary, location, date, posting URL).
"""

import logging
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from dateutil import parser as date_parser

from src.JOBBANK import config
from src.JOBBANK.models import JobPosting

logger = logging.getLogger(__name__)

PROVINCE_NAMES = {
    "AB": "Alberta",
    "BC": "British Columbia",
    "MB": "Manitoba",
    "NB": "New Brunswick",
    "NL": "Newfoundland and Labrador",
    "NS": "Nova Scotia",
    "NT": "Northwest Territories",
    "NU": "Nunavut",
    "ON": "Ontario",
    "PE": "Prince Edward Island",
    "QC": "Quebec",
    "SK": "Saskatchewan",
    "YT": "Yukon",
}

# Lower-cased names (English and French) -> code
PROVINCE_ALIASES = {name.lower(): code for code, name in PROVINCE_NAMES.items()}
PROVINCE_ALIASES.update({
    "québec": "QC",
    "colombie-britannique": "BC",
    "nouveau-brunswick": "NB",
    "nouvelle-écosse": "NS",
    "terre-neuve-et-labrador": "NL",
    "territoires du nord-ouest": "NT",
    "île-du-prince-édouard": "PE",
})

JOB_POSTING_TFW = re.compile(r'/jobpostingtfw/(\d+)')
PATH_NUMBER = re.compile(r'/(\d+)')
SESSION_OR_QUERY = re.compile(r';jsessionid=|[?#]', re.IGNORECASE)
LABEL_PREFIX = re.compile(r'^(Location|Salary)\s*:?\s*', re.IGNORECASE)
NEGOTIABLE = re.compile(r'\(?\s*to be negotiated\s*\)?', re.IGNORECASE)
SALARY_RANGE = re.compile(r'(\d+(?:\.\d+)?)\s*(?:to|-)\s*(\d+(?:\.\d+)?)', re.IGNORECASE)
SALARY_SINGLE = re.compile(r'(\d+(?:\.\d+)?)')


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace (tabs, newlines, runs of spaces)."""
    if not text:
        return ""
    return re.sub(r'\s+', ' ', text).strip()


def clean_salary_text(salary_text: str) -> str:
    """Drop the 'Salary:' label and 'to be negotiated' phrasing."""
    text = LABEL_PREFIX.sub('', clean_text(salary_text))
    text = NEGOTIABLE.sub('', text)
    return clean_text(text)


def clean_job_url(url: str, base_url: str) -> Tuple[str, Optional[str]]:
    """
    Resolve a posting link and strip session ids and query strings.

    Args:
        url: Link as found in the listing (relative or absolute)
        base_url: Site root used to resolve relative links

    Returns:
        Tuple of (absolute_url, job_bank_id); job_bank_id is None when the
        URL carries no numeric identifier
    """
    absolute = urljoin(base_url, url.strip())

    match = JOB_POSTING_TFW.search(absolute)
    if match:
        job_bank_id = match.group(1)
        return f"{base_url.rstrip('/')}/jobsearch/jobpostingtfw/{job_bank_id}", job_bank_id

    cleaned = SESSION_OR_QUERY.split(absolute, maxsplit=1)[0]
    numbers = PATH_NUMBER.findall(cleaned)
    return cleaned, (numbers[-1] if numbers else None)


def normalize_province(province: str) -> Optional[str]:
    """Map a province/territory name or code to its two-letter code."""
    value = clean_text(province)
    if not value:
        return None
    if value.upper() in PROVINCE_NAMES:
        return value.upper()
    return PROVINCE_ALIASES.get(value.lower())


def parse_location(location_raw: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Parse location string into city and province code.

    Args:
        location_raw: e.g. "Toronto (ON)", "Gatineau (Québec)", "Ottawa, Ontario"

    Returns:
        Tuple of (city, province); province is the two-letter code when
        recognised, otherwise the text as found
    """
    location = clean_text(location_raw)
    if not location:
        return (None, None)

    paren_match = re.match(r'^([^(]+)\s*\(([^)]+)\)$', location)
    if paren_match:
        city, province = paren_match.group(1).strip(), paren_match.group(2).strip()
    else:
        parts = [p.strip() for p in location.split(',')]
        if len(parts) < 2:
            return (parts[0] or None, None)
        city, province = parts[0], parts[-1]

    return (city or None, normalize_province(province) or province or None)


def display_location(location_raw: str, city: Optional[str], province: Optional[str]) -> str:
    """Human-readable location: "Toronto, Ontario" when the province is known."""
    if city and province in PROVINCE_NAMES:
        return f"{city}, {PROVINCE_NAMES[province]}"
    return clean_text(location_raw)


def parse_salary(salary_text: str) -> Tuple[Optional[float], Optional[float], Optional[str]]:
    """
    Parse salary text into (min, max, type).

    Example: "$25.00 to $30.00 hourly" -> (25.0, 30.0, "hourly")
    """
    if not salary_text:
        return (None, None, None)

    cleaned = salary_text.replace('$', '').replace(',', '')

    match = SALARY_RANGE.search(cleaned)
    if match:
        salary_min, salary_max = float(match.group(1)), float(match.group(2))
    else:
        single = SALARY_SINGLE.search(cleaned)
        if not single:
            return (None, None, None)
        salary_min = salary_max = float(single.group(1))

    lower = cleaned.lower()
    if 'yearly' in lower or 'annual' in lower:
        salary_type = 'yearly'
    elif 'monthly' in lower:
        salary_type = 'monthly'
    elif 'biweekly' in lower or 'bi-weekly' in lower:
        salary_type = 'biweekly'
    elif 'weekly' in lower:
        salary_type = 'weekly'
    else:
        salary_type = 'hourly'

    return (salary_min, salary_max, salary_type)


def parse_posting_date(date_text: str) -> Optional[str]:
    """Parse a displayed date ("October 17, 2025") into YYYY-MM-DD."""
    if not date_text:
        return None
    try:
        return date_parser.parse(date_text, fuzzy=True).date().isoformat()
    except (ValueError, OverflowError) as e:
        logger.debug(f"Could not parse date '{date_text}': {e}")
        return None


def _field_text(block: Tag, selector: str) -> str:
    element = block.select_one(selector)
    if element is None:
        return ""
    return clean_text(element.get_text(" "))


def _block_link(block: Tag) -> Optional[str]:
    for selector in config.LINK_SELECTORS:
        link = block.select_one(selector)
        if link is not None and link.get('href'):
            return link['href']
    return None


def read_listing_fields(block: Tag) -> Dict[str, str]:
    """Apply the fixed field -> selector mapping to one listing block."""
    for hidden in block.select(config.HIDDEN_LABEL_SELECTOR):
        hidden.decompose()

    fields = {'title': _field_text(block, config.TITLE_SELECTOR)}
    for name, selector in config.FIELD_SELECTORS.items():
        fields[name] = _field_text(block, selector)
    fields['href'] = _block_link(block) or ""
    return fields


def build_posting(fields: Dict[str, str], base_url: str) -> Optional[JobPosting]:
    """
    Turn raw listing fields into a JobPosting.

    Returns None when the title or link is missing.
    """
    title = fields.get('title', '')
    href = fields.get('href', '')
    if not title or not href:
        return None

    url, job_bank_id = clean_job_url(href, base_url)

    location_raw = LABEL_PREFIX.sub('', fields.get('location', ''))
    city, province = parse_location(location_raw)

    salary = clean_salary_text(fields.get('salary', ''))
    salary_min, salary_max, salary_type = parse_salary(salary)

    date = fields.get('date', '')

    return JobPosting(
        title=title,
        url=url,
        business=fields.get('business', ''),
        salary=salary,
        location=display_location(location_raw, city, province),
        date=date,
        job_bank_id=job_bank_id,
        city=city,
        province=province,
        salary_min=salary_min,
        salary_max=salary_max,
        salary_type=salary_type,
        posting_date=parse_posting_date(date),
    )


def extract_postings(html_content: str, base_url: str, out: List[JobPosting], skip_blocks: int = 0) -> int:
    """
    Extract postings from a rendered search results page.

    Args:
        html_content: Page HTML
        base_url: Site root used to resolve relative posting links
        out: List the postings are appended to, in page order
        skip_blocks: Number of leading blocks already extracted

    Returns:
        Total number of listing blocks on the page
    """
    soup = BeautifulSoup(html_content, 'html.parser')
    blocks = soup.select(config.LISTING_BLOCK)

    added = 0
    for index, block in enumerate(blocks[skip_blocks:], skip_blocks + 1):
        try:
            posting = build_posting(read_listing_fields(block), base_url)
        except Exception as e:
            logger.error(f"Error parsing listing block {index}: {e}")
            continue

        if posting is None:
            logger.warning(f"⚠️  Skipping listing block {index}: missing title or link")
            continue

        out.append(posting)
        added += 1
        logger.debug(f"{len(out)} job(s) loaded: {posting.title}")

    logger.info(f"📋 Extracted {added} postings from {max(len(blocks) - skip_blocks, 0)} listing blocks")
    return len(blocks)
