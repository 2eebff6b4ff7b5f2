"""CSV serialization helpers."""

from __future__ import annotations

import csv
from pathlib import Path

from .models import ExtractionResult

CSV_FIELDS = ["url", "email"]


def result_rows(results: list[ExtractionResult]) -> list[dict[str, str]]:
    """Flatten successful results into one row per (url, email)."""
    return [
        {"url": result.url, "email": email}
        for result in results
        if result.success
        for email in result.emails
    ]


def write_rows(path: str, rows: list[dict[str, str]]) -> None:
    """Write extraction rows to CSV with stable schema."""
    output_path = Path(path)
    with output_path.open("w", newline="", encoding="utf-8") as file_obj:
        writer = csv.DictWriter(file_obj, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
