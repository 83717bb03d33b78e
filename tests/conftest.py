# tests/conftest.py
import pytest
from playwright.sync_api import Error as PlaywrightError, TimeoutError as PWTimeout

from src.JOBBANK import config
from src.JOBBANK.models import ScrapeSettings


# ---------------------------------------------------------------------
# Job Bank markup fixtures
# ---------------------------------------------------------------------
def listing_block(
    title="Cook",
    href="/jobsearch/jobpostingtfw/43123456;jsessionid=ABC123?source=searchresults",
    business="Maple Diner Ltd.",
    location="Toronto (ON)",
    salary="$17.75 hourly",
    date="October 17, 2025",
):
    """One <article> as rendered by the results page; pass None to omit a field."""
    link_open = f'<a href="{href}" class="resultJobItem">' if href is not None else '<div>'
    link_close = '</a>' if href is not None else '</div>'
    title_html = (
        '<h3 class="title"><span class="flag"><span class="wb-inv">LMIA</span></span>'
        f'<span class="noctitle">\n\t\t{title}\n\t</span></h3>'
        if title is not None else '<h3 class="title"></h3>'
    )
    items = []
    if date is not None:
        items.append(f'<li class="date">{date}</li>')
    if business is not None:
        items.append(f'<li class="business">{business}</li>')
    if location is not None:
        items.append(f'<li class="location"><span class="wb-inv">Location</span>\n{location}</li>')
    if salary is not None:
        items.append(f'<li class="salary"><span class="wb-inv">Salary:</span>\n{salary}</li>')
    return (
        '<article class="action-buttons">'
        f'{link_open}{title_html}<ul class="list-unstyled">{"".join(items)}</ul>{link_close}'
        '</article>'
    )


def results_page(blocks, more_button=False, results_count=None):
    count_html = f'<span id="results-count">{results_count}</span>' if results_count else ''
    button_html = '<button id="moreresultbutton">More results</button>' if more_button else ''
    return (
        f'<html><body>{count_html}<div id="ajaxupdateform:result_block">'
        f'{"".join(blocks)}</div>{button_html}</body></html>'
    )


def numbered_blocks(start, count):
    return [
        listing_block(title=f"Job {i}", href=f"/jobsearch/jobpostingtfw/{1000 + i}")
        for i in range(start, start + count)
    ]


# ---------------------------------------------------------------------
# Fake Playwright page
# ---------------------------------------------------------------------
class FakeLocator:
    def __init__(self, page, selector):
        self.page = page
        self.selector = selector

    @property
    def first(self):
        return self

    def count(self):
        if self.page.page_closed:
            raise PlaywrightError("Target page, context or browser has been closed")
        if self.selector == config.LOAD_MORE_BUTTON:
            return 1 if self.page.has_more else 0
        if self.selector == config.RESULTS_COUNT:
            return 1 if self.page.results_count else 0
        return 0

    def is_visible(self):
        return self.page.button_visible

    def text_content(self):
        return self.page.results_count

    def click(self, timeout=None):
        self.page.click_attempts += 1
        if self.page.failing_clicks > 0:
            self.page.failing_clicks -= 1
            raise PWTimeout(f"Timeout {timeout}ms exceeded")
        self.page.revealed += 1
        self.page.load_more_clicks += 1


class FakePage:
    """
    Stands in for a Playwright Page.

    batches[0] is rendered after the search; each load-more click reveals the
    next batch. The load-more control exists while batches remain hidden.
    """

    def __init__(self, batches, results_count=None, failing_clicks=0, button_visible=True, results_timeout=False,
                 page_closed=False):
        self.batches = batches
        self.revealed = 1
        self.results_count = results_count
        self.failing_clicks = failing_clicks
        self.button_visible = button_visible
        self.results_timeout = results_timeout
        self.page_closed = page_closed
        self.calls = []
        self.waits = []
        self.click_attempts = 0
        self.load_more_clicks = 0

    @property
    def has_more(self):
        return self.revealed < len(self.batches)

    def goto(self, url, **kwargs):
        self.calls.append(("goto", url))

    def fill(self, selector, value):
        self.calls.append(("fill", selector, value))

    def click(self, selector, **kwargs):
        self.calls.append(("click", selector))

    def wait_for_selector(self, selector, **kwargs):
        self.calls.append(("wait_for_selector", selector))
        if self.results_timeout:
            raise PWTimeout(f"Timeout {kwargs.get('timeout')}ms exceeded waiting for {selector}")

    def wait_for_timeout(self, ms):
        self.waits.append(ms)

    def locator(self, selector):
        return FakeLocator(self, selector)

    def content(self):
        blocks = [block for batch in self.batches[:self.revealed] for block in batch]
        return results_page(blocks, more_button=self.has_more)


# ---------------------------------------------------------------------
# Fake Supabase client
# ---------------------------------------------------------------------
class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.op = None
        self.payload = None
        self.filters = []
        self.on_conflict = None
        self.negate = False

    @property
    def not_(self):
        self.negate = True
        return self

    def is_(self, column, value):
        self.filters.append(("not.is" if self.negate else "is", column, value))
        self.negate = False
        return self

    def select(self, columns):
        self.op = "select"
        return self

    def limit(self, n):
        return self

    def insert(self, data):
        self.op, self.payload = "insert", data
        return self

    def upsert(self, data, on_conflict=None):
        self.op, self.payload, self.on_conflict = "upsert", data, on_conflict
        return self

    def update(self, data):
        self.op, self.payload = "update", data
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(("eq", column, value))
        return self

    def neq(self, column, value):
        self.filters.append(("neq", column, value))
        return self

    def execute(self):
        if self.op in self.client.fail_on:
            raise RuntimeError(f"{self.op} on {self.table} rejected")
        self.client.executed.append(self)
        if self.op == "upsert":
            return FakeResponse(list(self.payload))
        if self.op == "delete":
            return FakeResponse(list(self.client.rows_to_delete))
        return FakeResponse([])


class FakeSupabaseClient:
    def __init__(self, fail_on=(), rows_to_delete=()):
        self.fail_on = set(fail_on)
        self.rows_to_delete = rows_to_delete
        self.executed = []

    def table(self, name):
        return FakeQuery(self, name)

    def ops(self, table=None):
        return [(q.table, q.op) for q in self.executed if table is None or q.table == table]


# ---------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "JOBBANK_JOB_TITLE", "JOBBANK_PROVINCE", "JOBBANK_PAGES", "JOBBANK_DELAY_MS",
        "JOBBANK_SAVE_JSON", "JOBBANK_SAVE_REMOTE", "JOBBANK_HEADLESS", "JOBBANK_LMIA_ONLY",
        "JOBBANK_EXTRACT_EACH_LOAD", "SUPABASE_URL", "SUPABASE_KEY",
        "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_ANON_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings(tmp_path):
    return ScrapeSettings(delay_ms=0, output_dir=tmp_path / "jobs_json")


@pytest.fixture
def fake_client():
    return FakeSupabaseClient()
