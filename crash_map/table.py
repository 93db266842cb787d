# -*- coding: utf-8 -*-
"""
Helpers for the accident table: date/time splitting and the CSV checkpoint.

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

import os
import re

import pandas as pd

from crash_map.scraper import DATE_COLUMN, FATALITIES_COLUMN, LOCATION_COLUMN, MODEL_COLUMN

LOCAL_TIME_COLUMN = "Local time"
LONGITUDE_COLUMN = "lon"
LATITUDE_COLUMN = "lat"

# Token separating the date from the local time, e.g. "Sep 10, 2017 at 1130 LT".
DATE_TIME_SEPARATOR_REGEX = re.compile(r"\bat\b")

_TEXT_COLUMNS = [DATE_COLUMN, LOCAL_TIME_COLUMN, LOCATION_COLUMN, MODEL_COLUMN]


def split_date(text):
	"""
	Splits a date string at the first "at" token.

	Returns a (date, local_time) tuple. The surrounding whitespace is kept, and
	local_time is empty when the token is absent.
	"""
	if not isinstance(text, str):
		return "", ""
	parts = DATE_TIME_SEPARATOR_REGEX.split(text, maxsplit=1)
	if len(parts) == 1:
		return text, ""
	return parts[0], parts[1]


def split_date_column(table):
	"""
	Returns a copy of the table with the Date column split into Date and Local time.
	"""
	result = table.copy()
	if LOCAL_TIME_COLUMN in result.columns:
		return result
	pairs = [split_date(value) for value in result[DATE_COLUMN]]
	result[DATE_COLUMN] = [date for date, _ in pairs]
	position = result.columns.get_loc(DATE_COLUMN) + 1
	result.insert(position, LOCAL_TIME_COLUMN, [local_time for _, local_time in pairs])
	return result


def save_table(table, path):
	directory = os.path.dirname(path)
	# Create the output directory if it doesn't exist.
	if directory and not os.path.isdir(directory):
		os.makedirs(directory, exist_ok=True)
	table.to_csv(path, index=False)


def load_table(path):
	"""
	Reads a table written by save_table.

	Text columns come back as strings (empty instead of NaN) and Fatalities
	as a nullable integer column.
	"""
	if not os.path.exists(path):
		raise FileNotFoundError(f"Table file not found: {path}")
	table = pd.read_csv(path, dtype={column: str for column in _TEXT_COLUMNS}, keep_default_na=False, na_values={
		FATALITIES_COLUMN: [""],
		LONGITUDE_COLUMN:  [""],
		LATITUDE_COLUMN:   [""]
	})
	if FATALITIES_COLUMN in table.columns:
		table[FATALITIES_COLUMN] = pd.to_numeric(table[FATALITIES_COLUMN], errors="coerce").astype("Int64")
	for column in (LONGITUDE_COLUMN, LATITUDE_COLUMN):
		if column in table.columns:
			table[column] = pd.to_numeric(table[column], errors="coerce")
	return table
