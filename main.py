# -*- coding: utf-8 -*-

# Copyright (C) 2025 by Kolja Nolte
# kolja.nolte@gmail.com
# https://wwww.kolja-nolte.com
#
# This script maps accident data from an aviation crash archive.
# Please read the README.md for more information.
#
# This work is licensed under the MIT License. You are free to use, share,
# and adapt this work, provided that you Include the original copyright notice.
#
# For more information, see the LICENSE file.
#
# Author:    Kolja Nolte
# Email:     kolja.nolte@email.com
# License:   MIT License
# Date:      2025
# Package:   crash-archive-map

"""
Module Docstring: main.py

This script serves as the entry point for mapping aviation accidents.
It scrapes the configured range of archive pages (or reuses the saved table),
geocodes every accident location, splits the local time out of the date and
renders the accidents as an interactive bubble map.
"""

# Import standard library modules
import os

# Import the crash_map modules
from crash_map import bubble_map, geocoder, scraper, table
import dotenv

# Default configuration values (used if the environment does not override them)
DEFAULT_FIRST_PAGE = 1
DEFAULT_LAST_PAGE = 3
DEFAULT_REQUEST_DELAY_SECONDS = 3
DEFAULT_SHOW_DETAILS = True
DEFAULT_TABLE_FILE_PATH = "./output/accidents.csv"
DEFAULT_MAP_FILE_PATH = "./output/accidents_map.html"
DEFAULT_REFRESH_TABLE = False
DEFAULT_GEOCODE_DAILY_QUOTA = geocoder.DEFAULT_DAILY_QUOTA
DEFAULT_GEOCODE_POLICY = geocoder.POLICY_STOP
DEFAULT_GEOCODE_DELAY_SECONDS = 1.0
DEFAULT_GEOCODER_USER_AGENT = geocoder.DEFAULT_USER_AGENT
DEFAULT_MARKER_SCALE = bubble_map.DEFAULT_MARKER_SCALE


def _load_int_from_env(env_key, default):
	"""
	Returns an integer pulled from the environment or the provided default.
	"""
	value = os.getenv(env_key)
	if value is None:
		return default
	try:
		return int(value)
	except ValueError:
		print(f"Warning: Invalid integer for {env_key}='{value}'. Falling back to {default}.")
		return default


def _load_float_from_env(env_key, default):
	"""
	Returns a float pulled from the environment or the provided default.
	"""
	value = os.getenv(env_key)
	if value is None:
		return default
	try:
		return float(value)
	except ValueError:
		print(f"Warning: Invalid number for {env_key}='{value}'. Falling back to {default}.")
		return default


def _load_bool_from_env(env_key, default):
	"""
	Returns a boolean pulled from the environment or the provided default.
	"""
	value = os.getenv(env_key)
	if value is None:
		return default
	lower_value = value.strip().lower()
	if lower_value in {"1", "true", "yes", "on"}:
		return True
	if lower_value in {"0", "false", "no", "off"}:
		return False
	print(f"Warning: Invalid boolean for {env_key}='{value}'. Falling back to {default}.")
	return default


def _load_choice_from_env(env_key, choices, default):
	value = os.getenv(env_key)
	if value is None:
		return default
	lower_value = value.strip().lower()
	if lower_value in choices:
		return lower_value
	print(f"Warning: Invalid choice for {env_key}='{value}'. Falling back to {default}.")
	return default


def _build_run_kwargs():
	"""
	Computes the keyword arguments for run() using env overrides.
	"""
	env_path = dotenv.find_dotenv('.env', False)
	dotenv.load_dotenv(env_path)
	return {
		"base_url": os.getenv("ARCHIVE_BASE_URL", scraper.ARCHIVE_BASE_URL),
		"first_page": _load_int_from_env("FIRST_PAGE", DEFAULT_FIRST_PAGE),
		"last_page": _load_int_from_env("LAST_PAGE", DEFAULT_LAST_PAGE),
		"request_delay_seconds": _load_int_from_env("REQUEST_DELAY_SECONDS", DEFAULT_REQUEST_DELAY_SECONDS),
		"show_details": _load_bool_from_env("SHOW_DETAILS", DEFAULT_SHOW_DETAILS),
		"table_path": os.getenv("TABLE_FILE_PATH", DEFAULT_TABLE_FILE_PATH),
		"map_path": os.getenv("MAP_FILE_PATH", DEFAULT_MAP_FILE_PATH),
		"refresh_table": _load_bool_from_env("REFRESH_TABLE", DEFAULT_REFRESH_TABLE),
		"daily_quota": _load_int_from_env("GEOCODE_DAILY_QUOTA", DEFAULT_GEOCODE_DAILY_QUOTA),
		"geocode_policy": _load_choice_from_env("GEOCODE_POLICY", geocoder.POLICIES, DEFAULT_GEOCODE_POLICY),
		"geocode_delay_seconds": _load_float_from_env("GEOCODE_DELAY_SECONDS", DEFAULT_GEOCODE_DELAY_SECONDS),
		"user_agent": os.getenv("GEOCODER_USER_AGENT", DEFAULT_GEOCODER_USER_AGENT),
		"marker_scale": _load_int_from_env("MARKER_SCALE", DEFAULT_MARKER_SCALE)
	}


def run(base_url, first_page=DEFAULT_FIRST_PAGE, last_page=DEFAULT_LAST_PAGE,
		request_delay_seconds=DEFAULT_REQUEST_DELAY_SECONDS, show_details=DEFAULT_SHOW_DETAILS,
		table_path=DEFAULT_TABLE_FILE_PATH, map_path=DEFAULT_MAP_FILE_PATH,
		refresh_table=DEFAULT_REFRESH_TABLE, daily_quota=DEFAULT_GEOCODE_DAILY_QUOTA,
		geocode_policy=DEFAULT_GEOCODE_POLICY, geocode_delay_seconds=DEFAULT_GEOCODE_DELAY_SECONDS,
		user_agent=DEFAULT_GEOCODER_USER_AGENT, marker_scale=DEFAULT_MARKER_SCALE, geocoder_backend=None):
	"""
	Runs the whole pipeline and returns the final accident table.

	The saved table doubles as a checkpoint: it is reused instead of scraping
	again, and rows it already geocoded are not looked up a second time.
	"""
	if table_path and os.path.exists(table_path) and not refresh_table:
		if show_details:
			print(f"Reusing saved accident table {table_path}")
		accidents = table.load_table(table_path)
	else:
		pages = scraper.crawl(
			range(first_page, last_page + 1),
			base_url=base_url,
			request_delay_seconds=request_delay_seconds,
			show_details=show_details
		)
		accidents = scraper.build_table(pages)
		if table_path:
			table.save_table(accidents, table_path)

	adapter = geocoder.GeocoderAdapter(
		geocoder=geocoder_backend,
		daily_quota=daily_quota,
		policy=geocode_policy,
		request_delay_seconds=geocode_delay_seconds,
		user_agent=user_agent
	)
	accidents = geocoder.geocode_table(accidents, adapter, show_details=show_details)
	if table_path:
		table.save_table(accidents, table_path)

	unresolved = geocoder.count_unresolved(accidents)
	if unresolved:
		print(f"{unresolved} of {len(accidents)} accident location(s) could not be geocoded.")

	accidents = table.split_date_column(accidents)
	markers = bubble_map.build_markers(accidents, scale=marker_scale)
	bubble_map.render_bubble_map(markers, output_path=map_path, show_details=show_details)
	return accidents


def main():
	"""
	Function Docstring: main()

	This function orchestrates the pipeline by calling run()
	with the configuration read from the environment.
	"""

	# Call the run function with computed parameters
	run(**_build_run_kwargs())


# Check if the script is being run as the main module
if __name__ == "__main__":
	# Call the main function to start the pipeline
	main()
