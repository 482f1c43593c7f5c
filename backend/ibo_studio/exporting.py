"""JSON and CSV renderings of stored records for download."""
from __future__ import annotations
import csv
import io
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

EXPORT_FORMATS = ("json", "csv")

# Fields each exported record must carry, per resource label
REQUIRED_FIELDS: Dict[str, tuple] = {
	"IBOs": ("id", "title"),
	"Cards": ("id", "title", "target_duration"),
	"Sessions": ("id", "title", "status"),
}


class ExportError(ValueError):
	pass


class EmptyExportError(ExportError):
	pass


def validate_export_data(records: Optional[List[Dict[str, Any]]], label: str) -> None:
	if records is None:
		raise EmptyExportError(f"No {label} data available for export")
	if not records:
		raise EmptyExportError(f"No {label} records found to export")
	for index, record in enumerate(records):
		if any(not record.get(field) for field in REQUIRED_FIELDS.get(label, ())):
			raise ExportError(f"Invalid {label} data at index {index}: missing required fields")


def generate_json(records: List[Dict[str, Any]], label: str, *, now: Optional[datetime] = None) -> str:
	payload = {
		"type": label,
		"exported_at": (now or datetime.utcnow()).isoformat() + "Z",
		"count": len(records),
		"data": records,
	}
	return json.dumps(payload, indent=2)


def _csv_value(value: Any) -> Any:
	if isinstance(value, (dict, list)):
		return json.dumps(value)
	return value


def generate_csv(records: List[Dict[str, Any]]) -> str:
	"""One row per record, columns taken from the first record.

	Nested values are written as JSON; strings are always quoted.
	"""
	if not records:
		raise EmptyExportError("No data available for CSV export")
	headers = list(records[0].keys())
	buf = io.StringIO()
	writer = csv.DictWriter(
		buf, fieldnames=headers, extrasaction="ignore", quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n"
	)
	writer.writeheader()
	for record in records:
		writer.writerow({h: _csv_value(record.get(h)) for h in headers})
	return buf.getvalue()


def export_filename(label: str, fmt: str, *, now: Optional[datetime] = None) -> str:
	stamp = (now or datetime.utcnow()).strftime("%Y-%m-%dT%H-%M-%S")
	return f"{label.lower()}_export_{stamp}.{fmt.lower()}"
