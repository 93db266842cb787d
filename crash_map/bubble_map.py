# -*- coding: utf-8 -*-
"""
Renders geocoded accidents as an interactive bubble map.

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

import pandas as pd
import plotly.graph_objects as go

from crash_map.scraper import DATE_COLUMN, FATALITIES_COLUMN, LOCATION_COLUMN
from crash_map.table import LATITUDE_COLUMN, LONGITUDE_COLUMN

DEFAULT_MARKER_SCALE = 1000

# Pixel diameter of the largest bubble on the map.
MAX_BUBBLE_SIZE_PX = 40


def format_popup(location, fatalities, date):
	count = "Unknown" if fatalities is None or pd.isna(fatalities) else int(fatalities)
	return f"{location}<br>{count} Fatalities in {date}"


def build_markers(table, scale=DEFAULT_MARKER_SCALE):
	"""
	Builds one marker per accident that has coordinates.

	Args:
		table: Accident table with lon and lat columns.
		scale: Radius per fatality.

	Returns:
		A list of dicts with the keys lon, lat, radius and popup, in table order.
	"""
	markers = []
	if LONGITUDE_COLUMN not in table.columns or LATITUDE_COLUMN not in table.columns:
		return markers
	for _, row in table.iterrows():
		lon, lat = row[LONGITUDE_COLUMN], row[LATITUDE_COLUMN]
		if pd.isna(lon) or pd.isna(lat):
			continue
		fatalities = row[FATALITIES_COLUMN]
		count = 0 if pd.isna(fatalities) else int(fatalities)
		markers.append({
			"lon":    float(lon),
			"lat":    float(lat),
			"radius": count * scale,
			"popup":  format_popup(row[LOCATION_COLUMN], fatalities, row[DATE_COLUMN])
		})
	return markers


def render_bubble_map(markers, output_path=None, title="Aviation accidents", show_details=True):
	"""
	Creates an interactive bubble map and optionally saves it as HTML.

	Args:
		markers: Markers as returned by build_markers().
		output_path: Path of the HTML file to write, or None.
		title: Title shown above the map.
		show_details: Whether to print progress messages.

	Returns:
		The plotly Figure.
	"""
	if show_details:
		print("Generating accident bubble map...")
	radii = [marker["radius"] for marker in markers]
	largest = max(radii) if radii else 0
	# Drawn bubble size is linear in the radius value.
	sizeref = largest / MAX_BUBBLE_SIZE_PX if largest else 1

	fig = go.Figure()
	fig.add_trace(go.Scattergeo(
		lon=[marker["lon"] for marker in markers],
		lat=[marker["lat"] for marker in markers],
		text=[marker["popup"] for marker in markers],
		hoverinfo="text",
		mode="markers",
		marker=dict(
			size=radii,
			sizemode="diameter",
			sizeref=sizeref,
			sizemin=2,
			color="crimson",
			opacity=0.6,
			line=dict(width=0.5, color="darkred")
		),
		name="Accidents"
	))
	fig.update_layout(
		title_text=f"<b>{title}</b>",
		geo=dict(
			projection_type="natural earth",
			showland=True,
			landcolor="rgb(243, 243, 243)",
			showcountries=True
		),
		template="plotly_white"
	)

	if output_path:
		directory = os.path.dirname(output_path)
		if directory and not os.path.isdir(directory):
			os.makedirs(directory, exist_ok=True)
		fig.write_html(output_path, include_plotlyjs="cdn")
		if show_details:
			print(f"Saved accident bubble map to {output_path}")
	return fig
