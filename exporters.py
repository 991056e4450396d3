from __future__ import annotations
import csv
import datetime
import io
from typing import Iterable, List, Optional

from formatters import format_iso_date
from schemas import WeightEntry, WeightLogInput

CSV_HEADER = ["Date", "Weight", "Unit", "Notes"]


def export_filename(today: Optional[datetime.date] = None) -> str:
    today = today or datetime.date.today()
    return f"weight-data-{format_iso_date(today)}.csv"


def export_weight_csv(entries: Iterable[WeightEntry]) -> str:
    """Render entries as ``Date,Weight,Unit,Notes`` CSV text."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for e in entries:
        weight = int(e.weight) if float(e.weight).is_integer() else e.weight
        writer.writerow([format_iso_date(e.date), weight, e.unit, e.notes or ""])
    return buf.getvalue()


def write_weight_csv(entries: Iterable[WeightEntry], path: str) -> str:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(export_weight_csv(entries))
    return path


def parse_weight_csv(text: str) -> List[WeightLogInput]:
    """Parse CSV produced by :func:`export_weight_csv` back into entries."""
    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames is None:
        return []
    missing = [col for col in CSV_HEADER[:3] if col not in reader.fieldnames]
    if missing:
        raise ValueError(f"Missing CSV columns: {', '.join(missing)}")
    rows: List[WeightLogInput] = []
    for line_no, row in enumerate(reader, start=2):
        date_text = (row.get("Date") or "").strip()
        weight_text = (row.get("Weight") or "").strip()
        if not date_text and not weight_text:
            continue
        try:
            day = datetime.date.fromisoformat(date_text)
            weight = float(weight_text)
        except ValueError as e:
            raise ValueError(f"Invalid row {line_no}: {e}") from e
        if weight <= 0:
            raise ValueError(f"Invalid row {line_no}: weight must be positive")
        unit = (row.get("Unit") or "kg").strip() or "kg"
        if unit not in ("kg", "lbs"):
            raise ValueError(f"Invalid row {line_no}: unknown unit {unit}")
        rows.append(
            WeightLogInput(
                weight=weight,
                unit=unit,
                notes=row.get("Notes") or None,
                date=datetime.datetime(day.year, day.month, day.day, tzinfo=datetime.timezone.utc),
            )
        )
    return rows


def read_weight_csv(path: str) -> List[WeightLogInput]:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return parse_weight_csv(f.read())
