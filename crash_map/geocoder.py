# -*- coding: utf-8 -*-
"""
Geocoding of accident locations.

The adapter wraps a geopy geocoder (Nominatim unless another one is passed in)
and treats the service's daily quota as an explicit budget: every network
lookup spends one unit, cached locations spend nothing, and once the budget is
gone the configured policy decides what happens to the remaining rows.

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

import math

from geopy.exc import GeocoderQuotaExceeded, GeopyError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from crash_map.scraper import LOCATION_COLUMN
from crash_map.table import LATITUDE_COLUMN, LONGITUDE_COLUMN

DEFAULT_DAILY_QUOTA = 2500
DEFAULT_USER_AGENT = "crash-archive-map"

# What to do with the remaining rows once the budget is spent.
POLICY_STOP = "stop"
POLICY_SKIP = "skip"
POLICY_QUEUE = "queue"
POLICIES = (POLICY_STOP, POLICY_SKIP, POLICY_QUEUE)


class GeocoderAdapter:
	"""
	Turns location strings into (longitude, latitude) pairs.

	lookup() never raises: a failed or impossible lookup returns None.
	"""

	def __init__(self, geocoder=None, daily_quota=DEFAULT_DAILY_QUOTA, policy=POLICY_STOP,
			request_delay_seconds=1, user_agent=DEFAULT_USER_AGENT, timeout=10):
		if policy not in POLICIES:
			raise ValueError(f"Unsupported geocoding policy '{policy}'. Valid options: {', '.join(POLICIES)}")
		if geocoder is None:
			geocoder = Nominatim(user_agent=user_agent, timeout=timeout)
		self.policy = policy
		self.daily_quota = daily_quota
		self.lookups = 0
		self.failures = 0
		self.pending = []
		self._quota_exceeded = False
		self._cache = {}
		# One request per lookup, no retries.
		self._geocode = RateLimiter(
			geocoder.geocode,
			min_delay_seconds=request_delay_seconds,
			max_retries=0,
			swallow_exceptions=False
		)

	@property
	def remaining(self):
		if self._quota_exceeded:
			return 0
		return max(self.daily_quota - self.lookups, 0)

	@property
	def exhausted(self):
		return self.remaining == 0

	def is_cached(self, location):
		return location in self._cache

	def lookup(self, location):
		"""
		Returns (longitude, latitude) for the location, or None.
		"""
		if not isinstance(location, str) or not location.strip():
			return None
		if location in self._cache:
			return self._cache[location]
		if self.exhausted:
			if self.policy == POLICY_QUEUE and location not in self.pending:
				self.pending.append(location)
			return None

		self.lookups += 1
		try:
			result = self._geocode(location)
		except GeocoderQuotaExceeded:
			# The service says the quota is gone; the attempt is not cached.
			self._quota_exceeded = True
			self.failures += 1
			if self.policy == POLICY_QUEUE and location not in self.pending:
				self.pending.append(location)
			return None
		except GeopyError:
			self.failures += 1
			self._cache[location] = None
			return None

		if result is None:
			self.failures += 1
			coordinates = None
		else:
			coordinates = (result.longitude, result.latitude)
		self._cache[location] = coordinates
		return coordinates


def _has_coordinates(lon, lat):
	return not (lon is None or lat is None or math.isnan(lon) or math.isnan(lat))


def count_unresolved(table):
	"""
	Returns the number of rows without both coordinates.
	"""
	if LONGITUDE_COLUMN not in table.columns or LATITUDE_COLUMN not in table.columns:
		return len(table)
	return int((table[LONGITUDE_COLUMN].isna() | table[LATITUDE_COLUMN].isna()).sum())


#
# Geocodes the Location column of an accident table.
#
# Rows that already carry both coordinates (from a saved table) are kept as
# they are and do not spend budget.
#
# @param table The accident table.
# @param adapter A GeocoderAdapter.
# @param show_details Whether to print a summary.
# @return A copy of the table with lon and lat columns.
def geocode_table(table, adapter, show_details=False):
	result = table.copy()
	longitudes = list(result[LONGITUDE_COLUMN]) if LONGITUDE_COLUMN in result.columns else [float("nan")] * len(result)
	latitudes = list(result[LATITUDE_COLUMN]) if LATITUDE_COLUMN in result.columns else [float("nan")] * len(result)

	for position, location in enumerate(result[LOCATION_COLUMN]):
		if _has_coordinates(longitudes[position], latitudes[position]):
			continue
		if adapter.exhausted and adapter.policy == POLICY_STOP:
			if show_details:
				print("Geocoding budget exhausted. Stopping lookups.")
			break
		coordinates = adapter.lookup(location)
		if coordinates is not None:
			longitudes[position], latitudes[position] = coordinates

	result[LONGITUDE_COLUMN] = _as_floats(longitudes)
	result[LATITUDE_COLUMN] = _as_floats(latitudes)

	if show_details:
		unresolved = count_unresolved(result)
		print(f"Geocoded {len(result) - unresolved} of {len(result)} locations; {unresolved} remain unresolved.")
		print(f"Geocoding requests issued: {adapter.lookups}, failed: {adapter.failures}, budget left: {adapter.remaining}.")
		if adapter.pending:
			print(f"{len(adapter.pending)} location(s) queued for a later run.")
	return result


def _as_floats(values):
	return [float("nan") if value is None else float(value) for value in values]
