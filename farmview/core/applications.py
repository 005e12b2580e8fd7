"""Chemical application form validation and totals."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

from farmview.core.models import ApplicationRecord, LastApplication
from farmview.errors import ValidationError

_REQUIRED_TEXT = ("product", "target_block")
_NUMERIC = ("quantity", "value", "acres_applied")


@dataclass(frozen=True)
class ApplicationSummary:
    """Totals shown above the application table."""

    total_value: float = 0.0
    total_quantity: float = 0.0
    total_acres: float = 0.0
    count: int = 0


def _parse_number(field: str, raw: Any, required: bool = True) -> float:
    if raw is None or str(raw).strip() == "":
        if required:
            raise ValidationError(field, "is required")
        return 0.0
    try:
        value = float(str(raw).strip().replace(",", "."))
    except ValueError as exc:
        raise ValidationError(field, f"not a number: {raw!r}") from exc
    if value < 0:
        raise ValidationError(field, "must not be negative")
    return value


def _parse_date(field: str, raw: Any, required: bool) -> date | None:
    if raw is None or str(raw).strip() == "":
        if required:
            raise ValidationError(field, "is required")
        return None
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw).strip())
    except ValueError as exc:
        raise ValidationError(field, f"expected YYYY-MM-DD, got {raw!r}") from exc


def validate_application(form: dict[str, Any]) -> ApplicationRecord:
    """Validate the new-application form.

    Parameters
    ----------
    form : dict[str, Any]
        Raw field values keyed by ``product``, ``quantity``, ``value``,
        ``target_block``, ``block_id``, ``application_date``,
        ``next_application`` and ``acres_applied``.

    Returns
    -------
    ApplicationRecord
        Record ready to be stored.

    Raises
    ------
    ValidationError
        Raised for the first invalid field.
    """
    for name in _REQUIRED_TEXT:
        if not str(form.get(name) or "").strip():
            raise ValidationError(name, "is required")
    numbers = {name: _parse_number(name, form.get(name)) for name in _NUMERIC}

    applied_on = _parse_date("application_date", form.get("application_date"), True)
    next_on = _parse_date("next_application", form.get("next_application"), False)
    if next_on is not None and next_on < applied_on:
        raise ValidationError("next_application", "must not precede the application date")

    return ApplicationRecord(
        product=str(form["product"]).strip(),
        quantity=numbers["quantity"],
        value=numbers["value"],
        target_block=str(form["target_block"]).strip(),
        block_id=form.get("block_id") or None,
        acres_applied=numbers["acres_applied"],
        application_date=applied_on.isoformat(),
        next_application=next_on.isoformat() if next_on else None,
    )


def summarize_applications(records: Iterable[ApplicationRecord]) -> ApplicationSummary:
    total_value = total_quantity = total_acres = 0.0
    count = 0
    for record in records:
        total_value += float(record.value or 0.0)
        total_quantity += float(record.quantity or 0.0)
        total_acres += float(record.acres_applied or 0.0)
        count += 1
    return ApplicationSummary(
        total_value=round(total_value, 2),
        total_quantity=round(total_quantity, 2),
        total_acres=round(total_acres, 2),
        count=count,
    )


def application_from_block_form(form: dict[str, Any]) -> LastApplication | None:
    """Build the block's last-application payload from the block form.

    Returns ``None`` when no product is filled in. Unparseable litres or
    value count as zero.
    """
    product = str(form.get("product") or "").strip()
    if not product:
        return None

    def _lenient(raw: Any) -> float:
        try:
            return float(str(raw).replace(",", "."))
        except (TypeError, ValueError):
            return 0.0

    return LastApplication(
        product=product,
        liters=_lenient(form.get("liters")),
        value=_lenient(form.get("value")),
        date=str(form.get("date") or "").strip() or None,
    )
