# -*- coding: utf-8 -*-
"""
This script scrapes accident data from a paginated aviation crash archive.

It includes functions for fetching archive pages, extracting the accident
fields of every listing and accumulating them into a single pandas table.

Copyright (C) 2025 by Kolja Nolte
kolja.nolte@gmail.com
https://www.kolja-nolte.com

This work is licensed under the MIT License. You are free to use, share,
and adapt this work, provided that you Include the original copyright notice.

For more information, see the LICENSE file.

Author:    Kolja Nolte
Email:     kolja.nolte@gmail.com
License:   MIT License
Date:      2025
Package:   crash-archive-map
"""

# Import the requests library for making HTTP requests.
import requests

# Import the dotenv library for loading environment variables.
import dotenv

# Import the BeautifulSoup library for parsing HTML.
from bs4 import BeautifulSoup

# Import pandas for the accident table.
import pandas as pd

# Import the regular expression library.
import re

# Import the operating system interface.
import os

# Import the time module.
import time

# Import the URL helpers.
from urllib.parse import urljoin

from collections import namedtuple


class CrashArchiveError(RuntimeError):
	"""Base class for page-level failures while crawling the archive."""
	pass


class PageFetchError(CrashArchiveError):
	"""Raised when an archive page cannot be downloaded."""

	def __init__(self, page_index, url, reason=None):
		self.page_index = page_index
		self.url = url
		message = f"Could not fetch archive page {page_index} ({url})"
		if reason is not None:
			message += f": {reason}"
		super().__init__(message)


class ExtractionError(CrashArchiveError):
	"""Raised when a field selector does not match on an archive page."""

	def __init__(self, page_index, selector, detail=None):
		self.page_index = page_index
		self.selector = selector
		message = f"Selector '{selector}' matched nothing on archive page {page_index}"
		if detail:
			message += f" ({detail})"
		super().__init__(message)


class FieldMismatchError(CrashArchiveError):
	"""Raised when the field sequences of one page differ in length."""

	def __init__(self, page_index, lengths):
		self.page_index = page_index
		self.lengths = lengths
		details = ", ".join(f"{field}={length}" for field, length in lengths.items())
		super().__init__(f"Field sequences of archive page {page_index} differ in length: {details}")


env_path = dotenv.find_dotenv('.env', False)

# Load environment variables from a .env file.
dotenv.load_dotenv(env_path)

# Define the base URL of the crash archive (the first listing page).
ARCHIVE_BASE_URL = os.getenv("ARCHIVE_BASE_URL", "")

# Path of every listing page after the first one.
ARCHIVE_PAGE_PATH = "category/archives/page/{page_index}/"

# Selector of the node wrapping a single accident in the listing.
RECORD_SELECTOR = ".list-crash-info"

# Field selectors, relative to a record node.
DATE_SELECTOR = "span:nth-child(2)"
LOCATION_SELECTOR = "span:nth-child(5) a"
MODEL_SELECTOR = "span:nth-child(8) a"
FATALITIES_SELECTOR = "strong"

# Field selectors as applied to a whole listing page.
FIELD_SELECTORS = {
	"date":       f"{RECORD_SELECTOR} {DATE_SELECTOR}",
	"location":   LOCATION_SELECTOR,
	"model":      MODEL_SELECTOR,
	"fatalities": f"{RECORD_SELECTOR} {FATALITIES_SELECTOR}"
}

# Column names of the accident table, in order.
DATE_COLUMN = "Date"
LOCATION_COLUMN = "Location"
MODEL_COLUMN = "Airplane model"
FATALITIES_COLUMN = "Fatalities"
TABLE_COLUMNS = [DATE_COLUMN, LOCATION_COLUMN, MODEL_COLUMN, FATALITIES_COLUMN]

# A fatality count is a plain non-negative integer.
FATALITIES_REGEX = re.compile(r"^\s*(\d+)\s*$")

REQUEST_HEADERS = {
	"User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/116.0.5845.188 Safari/537.36"
}

REQUEST_TIMEOUT_SECONDS = 10

# The four raw text sequences extracted from one archive page.
PageFields = namedtuple("PageFields", ["page_index", "dates", "locations", "models", "fatalities"])


def _format_response_preview(response_text, max_lines=5):
	"""
	Returns a preview string containing only the first `max_lines` of the HTTP response.
	"""
	if not response_text:
		return "<empty response>"
	lines = response_text.splitlines()
	preview = "\n".join(lines[:max_lines])
	if len(lines) > max_lines:
		preview += "\n..."
	return preview


def _node_text(node):
	return node.get_text(" ", strip=True)


#
# Builds the URL of an archive listing page.
#
# @param base_url The archive root; it doubles as the URL of page 1.
# @param page_index The 1-based page number.
# @return The absolute URL of the page.
def archive_page_url(base_url, page_index):
	if page_index <= 1:
		return base_url
	return urljoin(base_url.rstrip("/") + "/", ARCHIVE_PAGE_PATH.format(page_index=page_index))


#
# Parses the text of a fatality count.
#
# @param text The raw text extracted from the page.
# @return The count as an int, or None if the text is not a number.
def parse_fatalities(text):
	# Anything that is not a string cannot be a count.
	if not isinstance(text, str):
		return None
	# Match the text against the integer pattern.
	match = FATALITIES_REGEX.match(text)
	# Return None if the text is not numeric.
	if not match:
		return None
	return int(match.group(1))


#
# Downloads a single archive page.
#
# @param url The URL of the page.
# @param page_index The page number, used in error messages.
# @param show_details Whether to print details while fetching.
# @return The HTML text of the page.
def fetch_page(url, page_index=1, show_details=False):
	# Check if details should be shown.
	if show_details:
		# Print the URL being fetched.
		print(f"Attempting to scrape: {url}")

	session = requests.Session()
	session.trust_env = False  # Ensure system proxies are ignored

	try:
		response = session.get(url, headers=REQUEST_HEADERS, timeout=REQUEST_TIMEOUT_SECONDS)
		response.raise_for_status()
	except requests.exceptions.Timeout as e:
		raise PageFetchError(page_index, url, "request timed out") from e
	except requests.exceptions.RequestException as e:
		raise PageFetchError(page_index, url, e) from e

	html_text = response.text
	if show_details:
		preview = _format_response_preview(html_text, max_lines=5)
		print("Response received (first 5 lines):\n" + preview)
	return html_text


#
# Extracts the accident fields from the HTML of one archive page.
#
# Every accident is read from its own listing node, so the four field
# sequences always line up record by record.
#
# @param html_text The HTML of the page.
# @param page_index The page number, used in error messages.
# @param show_details Whether to print details while parsing.
# @return A PageFields tuple.
def extract_page_fields(html_text, page_index=1, show_details=False):
	# Parse the HTML content using BeautifulSoup.
	soup = BeautifulSoup(html_text, 'lxml')
	# Find every accident node on the page.
	record_nodes = soup.select(RECORD_SELECTOR)

	# Check if details should be shown.
	if show_details:
		# Print the number of accidents found.
		print(f"Found {len(record_nodes)} accident entries on this page.")

	# A listing page without accidents means the markup changed.
	if not record_nodes:
		raise ExtractionError(page_index, RECORD_SELECTOR)

	dates, locations, models, fatalities = [], [], [], []
	for position, node in enumerate(record_nodes, start=1):
		date_node = node.select_one(DATE_SELECTOR)
		if date_node is None:
			raise ExtractionError(page_index, FIELD_SELECTORS["date"], f"accident #{position}")
		location_node = node.select_one(LOCATION_SELECTOR)
		if location_node is None:
			raise ExtractionError(page_index, FIELD_SELECTORS["location"], f"accident #{position}")
		fatalities_node = node.select_one(FATALITIES_SELECTOR)
		if fatalities_node is None:
			raise ExtractionError(page_index, FIELD_SELECTORS["fatalities"], f"accident #{position}")
		# The airplane model is not always known.
		model_node = node.select_one(MODEL_SELECTOR)

		dates.append(_node_text(date_node))
		locations.append(_node_text(location_node))
		models.append(_node_text(model_node) if model_node is not None else "")
		fatalities.append(_node_text(fatalities_node))

	return PageFields(page_index, dates, locations, models, fatalities)


#
# Scrapes a single archive page.
#
# @param base_url The archive root URL.
# @param page_index The page number to scrape.
# @param show_details Whether to print details during scraping.
# @return A PageFields tuple.
def scrape_single_page(base_url, page_index, show_details=False):
	url = archive_page_url(base_url, page_index)
	html_text = fetch_page(url, page_index=page_index, show_details=show_details)
	# Check if details should be shown.
	if show_details:
		# Print a message indicating that the page content was fetched.
		print("Successfully fetched page content. Parsing HTML...")
	return extract_page_fields(html_text, page_index=page_index, show_details=show_details)


#
# Crawls a sequence of archive pages, one after another.
#
# @param page_indices The page numbers to scrape, in order.
# @param base_url The archive root URL; defaults to ARCHIVE_BASE_URL.
# @param request_delay_seconds The delay in seconds between requests.
# @param show_details Whether to print details during scraping.
# @return A list of PageFields, one per page, in the given order.
def crawl(page_indices, base_url=None, request_delay_seconds=3, show_details=True):
	base_url = base_url or ARCHIVE_BASE_URL
	# Without a base URL there is nothing to crawl.
	if not base_url:
		raise EnvironmentError("Missing required environment variable: ARCHIVE_BASE_URL")

	page_indices = list(page_indices)
	pages = []
	for position, page_index in enumerate(page_indices):
		# Check if details should be shown.
		if show_details:
			# Print the current page being scraped.
			print(f"\n--- Scraping Page {page_index} ---")
		pages.append(scrape_single_page(base_url, page_index, show_details=show_details))
		# Pause before the next request, if there is one.
		if position < len(page_indices) - 1:
			if show_details:
				print(f"Pausing for {request_delay_seconds} second(s)...")
			time.sleep(request_delay_seconds)

	# Check if details should be shown.
	if show_details:
		# Print a message indicating that crawling is finished.
		print(f"\n--- Finished Scraping ---")
		print(f"Scraped a total of {len(pages)} pages.")
	return pages


#
# Flattens the per-page field sequences into one accident table.
#
# @param pages An iterable of PageFields, in page order.
# @return A DataFrame with the columns of TABLE_COLUMNS.
def build_table(pages):
	rows = []
	for page in pages:
		lengths = {
			"date":       len(page.dates),
			"location":   len(page.locations),
			"model":      len(page.models),
			"fatalities": len(page.fatalities)
		}
		# Refuse to pair up fields that do not line up.
		if len(set(lengths.values())) > 1:
			raise FieldMismatchError(page.page_index, lengths)
		for date, location, model, fatalities in zip(page.dates, page.locations, page.models, page.fatalities):
			rows.append({
				DATE_COLUMN:       date,
				LOCATION_COLUMN:   location,
				MODEL_COLUMN:      model,
				FATALITIES_COLUMN: parse_fatalities(fatalities)
			})

	table = pd.DataFrame(rows, columns=TABLE_COLUMNS)
	table[FATALITIES_COLUMN] = table[FATALITIES_COLUMN].astype("Int64")
	return table
