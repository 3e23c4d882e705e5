import csv
import json
from typing import Any, Dict, List, Optional

from ..models.diagnostic import Diagnostic
from ..models.registry import KeyRecord
from ..utils.logging import good

CSV_FIELDS = ["ComputerName", "Hive", "Key", "SubKeyCount", "ValueCount"]


def _records_to_dicts(records: List[Any]) -> List[Dict]:
    """Convert KeyRecord objects to dicts for serialization."""
    return [rec.to_dict() if hasattr(rec, "to_dict") else rec for rec in records]


def write_json(
    path: str,
    records: List[KeyRecord],
    diagnostics: Optional[List[Diagnostic]] = None,
    silent: bool = False,
):
    """
    Write records to a JSON file.

    Without diagnostics the file is a plain list of records. With diagnostics
    it is an object with "records" and "diagnostics" keys.
    """
    data: Any = _records_to_dicts(records)
    if diagnostics is not None:
        data = {"records": data, "diagnostics": [d.to_dict() for d in diagnostics]}
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    if not silent:
        good(f"Wrote JSON results to {path}")


def write_csv(path: str, records: List[KeyRecord]):
    with open(path, "w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        w.writeheader()
        w.writerows(_records_to_dicts(records))
    good(f"Wrote CSV results to {path}")
