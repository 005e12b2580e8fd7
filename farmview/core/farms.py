"""Farm form validation."""

from __future__ import annotations

from typing import Any

from farmview.errors import ValidationError

MAX_TOTAL_AREA = 100_000_000


def _optional_float(field: str, raw: Any) -> float | None:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return float(str(raw).strip().replace(",", "."))
    except ValueError as exc:
        raise ValidationError(field, f"not a number: {raw!r}") from exc


def _optional_text(raw: Any) -> str | None:
    text = str(raw or "").strip()
    return text or None


def validate_farm(form: dict[str, Any]) -> dict[str, Any]:
    """Validate the farm edit form.

    Parameters
    ----------
    form : dict[str, Any]
        Raw values keyed by farm attribute name.

    Returns
    -------
    dict[str, Any]
        Cleaned attribute values, suitable for ``Farm.columns_for``.

    Raises
    ------
    ValidationError
        Raised when the name is empty, the area is not below
        ``MAX_TOTAL_AREA`` or coordinates are out of range.
    """
    name = str(form.get("name") or "").strip()
    if not name:
        raise ValidationError("name", "is required")

    total_area = _optional_float("total_area", form.get("total_area"))
    if total_area is not None:
        if total_area < 0:
            raise ValidationError("total_area", "must not be negative")
        if total_area >= MAX_TOTAL_AREA:
            raise ValidationError("total_area", f"must be less than {MAX_TOTAL_AREA:,}")

    latitude = _optional_float("latitude", form.get("latitude"))
    if latitude is not None and not -90.0 <= latitude <= 90.0:
        raise ValidationError("latitude", "must be between -90 and 90")
    longitude = _optional_float("longitude", form.get("longitude"))
    if longitude is not None and not -180.0 <= longitude <= 180.0:
        raise ValidationError("longitude", "must be between -180 and 180")

    return {
        "name": name,
        "location": _optional_text(form.get("location")),
        "total_area": total_area,
        "cane_variety": _optional_text(form.get("cane_variety")),
        "postal_code": _optional_text(form.get("postal_code")),
        "farm_number": _optional_text(form.get("farm_number")),
        "latitude": latitude,
        "longitude": longitude,
    }
