import argparse
import os
from typing import List, Tuple

import dotenv
import pandas as pd

from crash_map.scraper import FATALITIES_COLUMN, LOCATION_COLUMN, MODEL_COLUMN
from crash_map.table import load_table

DEFAULT_TABLE_PATH = "./output/accidents.csv"
GROUPABLE_COLUMNS = {
	"model": MODEL_COLUMN,
	"location": LOCATION_COLUMN
}


def _load_table_path() -> str:
	env_path = dotenv.find_dotenv('.env', False)
	dotenv.load_dotenv(env_path)
	return os.getenv("TABLE_FILE_PATH", DEFAULT_TABLE_PATH)


def _validate_column(column: str) -> str:
	if column not in GROUPABLE_COLUMNS:
		raise ValueError(f"Unsupported column '{column}'. Valid options: {', '.join(GROUPABLE_COLUMNS)}")
	return GROUPABLE_COLUMNS[column]


def fetch_counts(accidents: pd.DataFrame, column: str, limit: int | None = None) -> List[Tuple[str, int, int]]:
	"""Returns (label, accidents, fatalities) tuples, most accidents first."""
	column_name = _validate_column(column)
	labels = accidents[column_name].fillna("").astype(str).str.strip().replace("", "Unknown")
	grouped = pd.DataFrame({
		"label": labels,
		"fatalities": accidents[FATALITIES_COLUMN].fillna(0).astype(int)
	}).groupby("label").agg(total=("fatalities", "size"), fatalities=("fatalities", "sum")).reset_index()
	grouped = grouped.sort_values(["total", "label"], ascending=[False, True])
	rows = [(label, int(total), int(fatalities)) for label, total, fatalities in grouped.itertuples(index=False)]
	if limit is not None:
		return rows[:limit]
	return rows


def _print_counts(title: str, rows: List[Tuple[str, int, int]]):
	print(f"\n{title}")
	if not rows:
		print("  (no data)")
		return
	for label, total, fatalities in rows:
		print(f"{label}: {total} accident(s), {fatalities} fatalities")


def analyze_table(table_path: str, mode: str, limit: int | None = None):
	accidents = load_table(table_path)
	if mode in ("model", "both"):
		rows = fetch_counts(accidents, "model", limit=limit)
		_print_counts("Accidents by airplane model", rows)
	if mode in ("location", "both"):
		rows = fetch_counts(accidents, "location", limit=limit)
		_print_counts("Accidents by location", rows)


def parse_args():
	parser = argparse.ArgumentParser(
		description="Summarize the saved accident table by airplane model and location."
	)
	parser.add_argument(
		"--mode",
		choices=["model", "location", "both"],
		default="both",
		help="Which summary to print (default: both)."
	)
	parser.add_argument(
		"--limit",
		type=int,
		default=None,
		help="Only show the first N rows."
	)
	parser.add_argument(
		"--table",
		type=str,
		default=None,
		help="Path of the accident table (default: TABLE_FILE_PATH from .env)."
	)
	return parser.parse_args()


def main():
	args = parse_args()
	table_path = args.table or _load_table_path()
	analyze_table(table_path, mode=args.mode, limit=args.limit)


if __name__ == "__main__":
	main()
