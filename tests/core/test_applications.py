"""Tests for application form validation and totals."""

from __future__ import annotations

import pytest

from farmview.core.applications import (
    application_from_block_form,
    summarize_applications,
    validate_application,
)
from farmview.core.models import ApplicationRecord
from farmview.errors import ValidationError


def _form(**overrides) -> dict:
    form = {
        "product": " Glifosato ",
        "quantity": "12,5",
        "value": "300",
        "target_block": "Bloco 1",
        "block_id": "b1",
        "application_date": "2024-03-10",
        "next_application": "2024-04-10",
        "acres_applied": "4.2",
    }
    form.update(overrides)
    return form


def test_validate_application_builds_record() -> None:
    """A complete form should produce a record with parsed numbers."""
    record = validate_application(_form())

    assert record.product == "Glifosato"
    assert record.quantity == 12.5
    assert record.value == 300.0
    assert record.acres_applied == 4.2
    assert record.block_id == "b1"
    assert record.application_date == "2024-03-10"
    assert record.next_application == "2024-04-10"


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"product": "  "}, "product"),
        ({"target_block": ""}, "target_block"),
        ({"quantity": ""}, "quantity"),
        ({"value": "abc"}, "value"),
        ({"acres_applied": "-1"}, "acres_applied"),
        ({"application_date": ""}, "application_date"),
        ({"application_date": "10/03/2024"}, "application_date"),
        ({"next_application": "2024-03-01"}, "next_application"),
    ],
)
def test_validate_application_rejects_bad_fields(overrides: dict, field: str) -> None:
    """Invalid input should raise ValidationError naming the field."""
    with pytest.raises(ValidationError) as info:
        validate_application(_form(**overrides))

    assert info.value.field == field
    assert str(info.value).startswith(f"{field}: ")


def test_next_application_is_optional() -> None:
    """A blank follow-up date should be stored as None."""
    record = validate_application(_form(next_application="", block_id=""))

    assert record.next_application is None
    assert record.block_id is None


def test_summarize_applications_totals() -> None:
    """Totals should add value, quantity and acreage."""
    summary = summarize_applications(
        [
            ApplicationRecord(product="a", quantity=1.5, value=10.0, acres_applied=2.0),
            ApplicationRecord(product="b", quantity=2.5, value=20.25, acres_applied=3.0),
        ]
    )

    assert summary.count == 2
    assert summary.total_quantity == 4.0
    assert summary.total_value == 30.25
    assert summary.total_acres == 5.0
    assert summarize_applications([]).count == 0


def test_application_from_block_form() -> None:
    """The block form payload should need a product and parse numbers leniently."""
    assert application_from_block_form({"product": ""}) is None

    last = application_from_block_form(
        {"product": "Ureia", "liters": "3,5", "value": "x", "date": "2024-01-01"}
    )

    assert last.product == "Ureia"
    assert last.liters == 3.5
    assert last.value == 0.0
    assert last.date == "2024-01-01"
