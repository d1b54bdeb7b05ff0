"""
CarbonV2 — Entry validation

Turns loosely-typed input (JSON body, CSV row, document extraction) into a
NewEntry.  Anything malformed raises ValidationError before the store is
touched.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from .errors import ValidationError


DATE_FORMAT = "%Y-%m-%d"

# Width of the entries.amount column
AMOUNT_PRECISION = 14
AMOUNT_SCALE = 2
AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_SCALE)


@dataclass(frozen=True)
class NewEntry:
    """Validated entry draft, not yet persisted."""
    type: str
    amount: Decimal
    currency: str
    date: date
    category: Optional[str] = None
    source: Optional[str] = None


def parse_amount(raw: Any) -> Decimal:
    if isinstance(raw, bool) or raw is None:
        raise ValidationError("amount is required")
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"amount is not a number: {raw!r}") from None
    if not amount.is_finite():
        raise ValidationError("amount must be finite")
    if amount < 0:
        raise ValidationError("amount must be non-negative")
    if amount != 0 and amount.adjusted() >= AMOUNT_PRECISION - AMOUNT_SCALE:
        raise ValidationError(
            f"amount is too large: at most {AMOUNT_PRECISION - AMOUNT_SCALE} integer digits"
        )
    if amount != amount.quantize(AMOUNT_QUANTUM):
        raise ValidationError(f"amount has more than {AMOUNT_SCALE} decimal places: {raw!r}")
    return amount


def parse_date(raw: Any) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return datetime.strptime(str(raw).strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError("invalid date, expected YYYY-MM-DD") from None


def _optional_text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def parse_entry(
    entry_type: Any,
    amount: Any,
    currency: Any,
    entry_date: Any,
    category: Any = None,
    source: Any = None,
) -> NewEntry:
    """Validate raw fields into a NewEntry."""
    entry_type = _optional_text(entry_type)
    if entry_type is None:
        raise ValidationError("type is required")

    currency = _optional_text(currency)
    if currency is None:
        raise ValidationError("currency is required")
    if len(currency) != 3 or not currency.isalpha():
        raise ValidationError(f"currency must be a 3-letter code: {currency!r}")

    return NewEntry(
        type=entry_type,
        amount=parse_amount(amount),
        currency=currency.upper(),
        date=parse_date(entry_date),
        category=_optional_text(category),
        source=_optional_text(source),
    )


def entry_from_extraction(fields: Mapping[str, Any], default_currency: str = "EUR") -> NewEntry:
    """
    Map structured fields from document text extraction onto an entry.

    Expected keys (all optional except the total): total_amount / amount,
    currency, date / invoice_date, supplier, category, type.
    The supplier name is kept as the entry source (the counterparty used for
    supplier grouping); without one the source is "document".
    """
    amount = fields.get("total_amount", fields.get("amount"))
    if amount is None or (isinstance(amount, float) and math.isnan(amount)):
        raise ValidationError("extraction has no total amount")

    return parse_entry(
        entry_type=fields.get("type") or "invoice",
        amount=amount,
        currency=fields.get("currency") or default_currency,
        entry_date=fields.get("date") or fields.get("invoice_date") or date.today(),
        category=fields.get("category"),
        source=fields.get("supplier") or "document",
    )
