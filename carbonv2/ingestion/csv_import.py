"""
CarbonV2 — CSV Entry Import
============================
Parses an uploaded CSV into validated entry drafts.

Expected header:
    type,amount,currency,date,category,source

The first row is always treated as the header and skipped.  Rows with
fewer than four columns, or that fail entry validation, are skipped and
counted; they never abort the import.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Union

from ..engine.entries import NewEntry, parse_entry
from ..engine.errors import ValidationError

logger = logging.getLogger("carbonv2.import")

MIN_COLUMNS = 4


@dataclass
class ParsedCsv:
    drafts: list[NewEntry] = field(default_factory=list)
    skipped: int = 0
    data_rows: int = 0


@dataclass
class ImportResult:
    """Outcome of one import.  `inserted` only counts committed rows."""
    inserted: int = 0
    skipped: int = 0


def _decode(content: Union[bytes, str]) -> str:
    if isinstance(content, str):
        return content
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV file must be UTF-8 encoded") from None


def _cell(row: list[str], index: int):
    return row[index] if index < len(row) else None


def parse_csv(content: Union[bytes, str]) -> ParsedCsv:
    """Split the file into valid drafts and a skipped-row count."""
    text = _decode(content)
    parsed = ParsedCsv()

    try:
        rows = list(csv.reader(io.StringIO(text)))
    except csv.Error as e:
        raise ValidationError(f"unreadable CSV: {e}") from None

    for line_no, row in enumerate(rows[1:], start=2):
        if not any(cell.strip() for cell in row):
            continue
        parsed.data_rows += 1

        if len(row) < MIN_COLUMNS:
            parsed.skipped += 1
            logger.debug("Row %d skipped — %d columns", line_no, len(row))
            continue

        try:
            draft = parse_entry(
                entry_type=row[0],
                amount=row[1],
                currency=row[2],
                entry_date=row[3],
                category=_cell(row, 4),
                source=_cell(row, 5),
            )
        except ValidationError as e:
            parsed.skipped += 1
            logger.debug("Row %d skipped — %s", line_no, e.message)
            continue

        parsed.drafts.append(draft)

    if parsed.data_rows == 0:
        raise ValidationError("CSV file has no data rows")
    return parsed
