"""Block form validation."""

from __future__ import annotations

from typing import Any

from farmview.core.applications import _parse_date, application_from_block_form
from farmview.core.models import DEFAULT_TRANSPARENCY
from farmview.core.palette import normalize_hex
from farmview.errors import ValidationError

_DATE_FIELDS = ("planting_date", "next_harvest", "next_application")


def validate_block_form(form: dict[str, Any]) -> dict[str, Any]:
    """Validate the block metadata form.

    Parameters
    ----------
    form : dict[str, Any]
        Raw values keyed by ``name``, ``color``, ``transparency``, the date
        fields, ``cane_variety``, ``has_drain`` and the last-application
        fields ``product``, ``liters``, ``value`` and ``date``. Keys such as
        ``cane_age`` and ``notes`` pass through untouched.

    Returns
    -------
    dict[str, Any]
        Attribute-keyed changes for ``BlockStore.update``.

    Raises
    ------
    ValidationError
        Raised for an empty name, a bad colour or a malformed date.
    """
    name = str(form.get("name") or "").strip()
    if not name:
        raise ValidationError("name", "is required")
    try:
        color = normalize_hex(str(form.get("color") or ""))
    except ValueError as exc:
        raise ValidationError("color", str(exc)) from exc

    transparency = form.get("transparency")
    try:
        transparency = DEFAULT_TRANSPARENCY if transparency is None else float(transparency)
    except (TypeError, ValueError) as exc:
        raise ValidationError("transparency", f"not a number: {transparency!r}") from exc
    if not 0.0 <= transparency <= 1.0:
        raise ValidationError("transparency", "must be between 0 and 1")

    values: dict[str, Any] = {
        "name": name,
        "color": color,
        "transparency": transparency,
        "cane_variety": str(form.get("cane_variety") or "").strip() or None,
        "has_drain": bool(form.get("has_drain")),
    }
    for field in _DATE_FIELDS:
        parsed = _parse_date(field, form.get(field), required=False)
        values[field] = parsed.isoformat() if parsed else None

    if str(form.get("date") or "").strip():
        _parse_date("date", form.get("date"), required=False)
    values["last_application"] = application_from_block_form(
        {key: form.get(key) for key in ("product", "liters", "value", "date")}
    )

    for passthrough in ("cane_age", "notes"):
        if passthrough in form:
            values[passthrough] = form[passthrough]
    return values
