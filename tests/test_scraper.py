import pytest
import requests

import crash_map.scraper as scraper


# Builds the markup of one accident entry as the archive lists it.
def _accident_html(date, location, model, fatalities):
	model_span = f'<span><a href="/type/{model}">{model}</a></span>' if model else "<span></span>"
	return f"""
        <div class="list-crash-info">
            <span>Date &amp; Time:</span>
            <span>{date}</span>
            <span>Operator:</span>
            <span>Some Operator</span>
            <span><a href="/place/{location}">{location}</a></span>
            <span>Registration:</span>
            <span>N12345</span>
            {model_span}
            <span>Crew &amp; Passengers:</span>
            <strong>{fatalities}</strong>
        </div>
    """


def _listing_html(*accidents):
	entries = "".join(_accident_html(*accident) for accident in accidents)
	return f"<html><body><div class='crash-list'>{entries}</div></body></html>"


# Defines a mock response class for simulating HTTP responses.
class MockResponse:
	def __init__(self, text, status_code=200):
		self.text = text
		self.status_code = status_code
		self.encoding = 'utf-8'

	def raise_for_status(self):
		if self.status_code >= 400:
			raise requests.exceptions.HTTPError(f"{self.status_code} Error")


def _install_session(monkeypatch, pages):
	"""Replaces requests.Session with a session serving `pages` (url -> response)."""
	requested = []

	class MockSession:
		def __init__(self):
			self.trust_env = True

		def get(self, url, *args, **kwargs):
			requested.append(url)
			return pages[url]

	monkeypatch.setattr(scraper.requests, "Session", MockSession)
	return requested


BASE_URL = "https://archive.example/"


def test_archive_page_url():
	# The first page is the archive root itself.
	assert scraper.archive_page_url(BASE_URL, 1) == BASE_URL
	assert scraper.archive_page_url(BASE_URL, 2) == "https://archive.example/category/archives/page/2/"
	# A missing trailing slash on the base URL makes no difference.
	assert scraper.archive_page_url("https://archive.example", 7) == "https://archive.example/category/archives/page/7/"


@pytest.mark.parametrize("text, expected", [
	("3", 3),
	("0", 0),
	(" 12 ", 12),
	("157\n", 157),
])
def test_parse_fatalities_numbers(text, expected):
	assert scraper.parse_fatalities(text) == expected


@pytest.mark.parametrize("text", ["", "unknown", "3 people", "-2", "1.5", None])
def test_parse_fatalities_non_numeric_is_missing(text):
	assert scraper.parse_fatalities(text) is None


def test_extract_page_fields_reads_every_accident():
	html = _listing_html(
		("Sep 10, 2017 at 1130 LT", "Havana", "Cessna 208 Caravan", "3"),
		("Sep 8, 2017", "Lagos", "", "0"),
	)
	page = scraper.extract_page_fields(html, page_index=4)
	assert page.page_index == 4
	assert page.dates == ["Sep 10, 2017 at 1130 LT", "Sep 8, 2017"]
	assert page.locations == ["Havana", "Lagos"]
	# A missing model becomes an empty string instead of shifting the column.
	assert page.models == ["Cessna 208 Caravan", ""]
	assert page.fatalities == ["3", "0"]


def test_extract_page_fields_without_accidents_fails():
	with pytest.raises(scraper.ExtractionError) as excinfo:
		scraper.extract_page_fields("<html><body><p>Nothing here</p></body></html>", page_index=5)
	assert excinfo.value.page_index == 5
	assert excinfo.value.selector == scraper.RECORD_SELECTOR
	assert "page 5" in str(excinfo.value)


# Each accident node below lacks exactly one required field.
_MISSING_FIELD_HTML = {
	"date": """
    <div class="list-crash-info">
        <span>Date:</span>
    </div>
    """,
	"location": """
    <div class="list-crash-info">
        <span>Date:</span><span>Jan 1, 2000</span><span>x</span><span>x</span><span>no link</span>
        <strong>2</strong>
    </div>
    """,
	"fatalities": """
    <div class="list-crash-info">
        <span>Date:</span><span>Jan 1, 2000</span><span>x</span><span>x</span><span><a href="#">Oslo</a></span>
        <span>x</span><span>x</span><span><a href="#">ATR 72</a></span>
    </div>
    """
}


@pytest.mark.parametrize("field", ["date", "location", "fatalities"])
def test_extract_page_fields_missing_field_names_selector(field):
	with pytest.raises(scraper.ExtractionError) as excinfo:
		scraper.extract_page_fields(_MISSING_FIELD_HTML[field], page_index=9)
	assert excinfo.value.selector == scraper.FIELD_SELECTORS[field]
	assert excinfo.value.page_index == 9
	assert "accident #1" in str(excinfo.value)


def test_fetch_page_http_error_raises_page_fetch_error(monkeypatch):
	url = scraper.archive_page_url(BASE_URL, 3)
	_install_session(monkeypatch, {url: MockResponse("gone", status_code=404)})

	with pytest.raises(scraper.PageFetchError) as excinfo:
		scraper.fetch_page(url, page_index=3)
	assert excinfo.value.page_index == 3
	assert excinfo.value.url == url


def test_fetch_page_timeout_raises_page_fetch_error(monkeypatch):
	class TimeoutSession:
		def __init__(self):
			self.trust_env = True

		def get(self, *args, **kwargs):
			raise requests.exceptions.Timeout("too slow")

	monkeypatch.setattr(scraper.requests, "Session", TimeoutSession)

	with pytest.raises(scraper.PageFetchError, match="timed out"):
		scraper.fetch_page(BASE_URL, page_index=1)


def test_crawl_preserves_page_order(monkeypatch):
	pages = {
		scraper.archive_page_url(BASE_URL, 1): MockResponse(_listing_html(("Jan 3, 2001", "Oslo", "ATR 72", "1"))),
		scraper.archive_page_url(BASE_URL, 2): MockResponse(_listing_html(("Jan 2, 2001", "Rome", "A320", "2"))),
	}
	requested = _install_session(monkeypatch, pages)
	monkeypatch.setattr(scraper.time, "sleep", lambda seconds: None)

	result = scraper.crawl([1, 2], base_url=BASE_URL, request_delay_seconds=0, show_details=False)

	assert [page.page_index for page in result] == [1, 2]
	assert [page.locations for page in result] == [["Oslo"], ["Rome"]]
	assert requested == list(pages)


def test_crawl_reports_failing_page(monkeypatch):
	pages = {
		scraper.archive_page_url(BASE_URL, 1): MockResponse(_listing_html(("Jan 3, 2001", "Oslo", "ATR 72", "1"))),
		scraper.archive_page_url(BASE_URL, 2): MockResponse("<html><body>maintenance</body></html>"),
	}
	_install_session(monkeypatch, pages)
	monkeypatch.setattr(scraper.time, "sleep", lambda seconds: None)

	with pytest.raises(scraper.ExtractionError) as excinfo:
		scraper.crawl([1, 2], base_url=BASE_URL, request_delay_seconds=0, show_details=False)
	assert excinfo.value.page_index == 2


def test_crawl_without_base_url(monkeypatch):
	monkeypatch.setattr(scraper, "ARCHIVE_BASE_URL", "")
	with pytest.raises(EnvironmentError):
		scraper.crawl([1], show_details=False)


def test_build_table_flattens_pages_in_order():
	pages = [
		scraper.PageFields(1, ["d1", "d2"], ["l1", "l2"], ["m1", ""], ["1", "n/a"]),
		scraper.PageFields(2, ["d3"], ["l3"], ["m3"], ["7"]),
	]
	accidents = scraper.build_table(pages)

	assert list(accidents.columns) == scraper.TABLE_COLUMNS
	assert len(accidents) == 3
	assert list(accidents["Date"]) == ["d1", "d2", "d3"]
	assert list(accidents["Airplane model"]) == ["m1", "", "m3"]
	assert accidents["Fatalities"].iloc[0] == 1
	# Unparseable counts are missing, the row itself survives.
	assert accidents["Fatalities"].isna().iloc[1]
	assert accidents["Fatalities"].iloc[2] == 7


def test_build_table_rejects_unequal_fields():
	pages = [
		scraper.PageFields(1, ["d1"], ["l1"], ["m1"], ["1"]),
		scraper.PageFields(2, ["d2", "d3"], ["l2"], ["m2", "m3"], ["1", "2"]),
	]
	with pytest.raises(scraper.FieldMismatchError) as excinfo:
		scraper.build_table(pages)
	assert excinfo.value.page_index == 2
	assert excinfo.value.lengths["location"] == 1


def test_build_table_empty():
	accidents = scraper.build_table([])
	assert accidents.empty
	assert list(accidents.columns) == scraper.TABLE_COLUMNS
