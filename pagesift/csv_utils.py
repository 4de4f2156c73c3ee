"""CSV output and URL list input."""

import csv
import json
import os
from typing import Dict, Iterable, List, Sequence, Tuple

from pagesift.logging_config import get_logger
from pagesift.models import ProductRecord

__all__ = [
    "CSV_COLUMNS",
    "record_to_row",
    "write_records_to_csv",
    "load_urls",
]

logger = get_logger("csv")

# (record attribute, column title); order is fixed
CSV_COLUMNS: List[Tuple[str, str]] = [
    ("url", "URL"),
    ("name", "Name"),
    ("price", "Price"),
    ("description", "Description"),
    ("brand", "Brand"),
    ("images", "Images"),
    ("is_product_page", "Is Product Page"),
    ("error", "Error"),
]


def record_to_row(record: ProductRecord) -> Dict[str, str]:
    """Convert a ProductRecord into a CSV-ready row keyed by column title.

    Images are serialized as a JSON array, the flag as true/false.
    """
    data = record.to_dict()
    data["images"] = json.dumps(data["images"], ensure_ascii=False)
    data["is_product_page"] = "true" if data["is_product_page"] else "false"
    data["error"] = data["error"] or ""
    return {title: data[attr] for attr, title in CSV_COLUMNS}


def write_records_to_csv(records: Sequence[ProductRecord], path: str) -> int:
    """Write records to a CSV file, one row per record, in the given order.

    The header is always written, even for an empty batch.

    Args:
        records: Records to write
        path: Output CSV path (parent directories are created)

    Returns:
        Number of rows written
    """
    fieldnames = [title for _, title in CSV_COLUMNS]

    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for record in records:
            writer.writerow(record_to_row(record))

    logger.info(f"Saved {len(records)} row(s) to {path}")
    return len(records)


def load_urls(path: str) -> List[str]:
    """Load URLs from a text file, one per line.

    Blank lines and lines starting with '#' are skipped. Order is kept and
    duplicates are not removed, since each input line yields one output row.
    """
    with open(path, "r", encoding="utf-8") as f:
        return _parse_url_lines(f)


def _parse_url_lines(lines: Iterable[str]) -> List[str]:
    urls: List[str] = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        urls.append(line)
    return urls
