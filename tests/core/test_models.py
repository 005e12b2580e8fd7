"""Tests for row mapping of farm, block and application entities."""

from __future__ import annotations

import json

import pytest

from farmview.core.models import (
    DEFAULT_BLOCK_COLOR,
    DEFAULT_TRANSPARENCY,
    ApplicationRecord,
    Block,
    Farm,
    LastApplication,
    parse_coordinates,
)


def test_parse_coordinates_accepts_json_text_and_drops_closing_vertex() -> None:
    """parse_coordinates should read JSON text and return an open ring."""
    raw = json.dumps([[-47.1, -22.1], [-47.0, -22.1], [-47.0, -22.0], [-47.1, -22.1]])

    coords = parse_coordinates(raw)

    assert coords == [[-47.1, -22.1], [-47.0, -22.1], [-47.0, -22.0]]


def test_parse_coordinates_rejects_malformed_payloads() -> None:
    """parse_coordinates should raise ValueError for non-pair content."""
    with pytest.raises(ValueError):
        parse_coordinates("not json")
    with pytest.raises(ValueError):
        parse_coordinates({"lon": 1})
    with pytest.raises(ValueError):
        parse_coordinates([[1.0]])
    assert parse_coordinates(None) == []


def test_block_from_row_decodes_portuguese_columns() -> None:
    """Block.from_row should map stored columns onto attributes."""
    row = {
        "id": "b1",
        "fazenda_id": "f1",
        "nome": "Talhão 1",
        "cor": None,
        "transparencia": None,
        "coordenadas": "[[0, 0], [1, 0], [1, 1], [0, 0]]",
        "possui_dreno": 1,
        "ultima_aplicacao": {"produto": "Glifosato", "litros": "20", "valor": 150, "data": "2024-03-01"},
        "ndvi_historico": None,
    }

    block = Block.from_row(row)

    assert block.id == "b1"
    assert block.farm_id == "f1"
    assert block.name == "Talhão 1"
    assert block.color == DEFAULT_BLOCK_COLOR
    assert block.transparency == DEFAULT_TRANSPARENCY
    assert block.coordinates == [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0]]
    assert block.has_drain is True
    assert block.last_application == LastApplication("Glifosato", 20.0, 150.0, "2024-03-01")
    assert block.ndvi_history == []


def test_block_from_row_discards_unreadable_coordinates() -> None:
    """Block.from_row should fall back to an empty ring on bad coordinates."""
    block = Block.from_row({"id": "b1", "nome": "x", "coordenadas": "{broken"})

    assert block.coordinates == []


def test_block_to_row_omits_server_fields_and_encodes_last_application() -> None:
    """Block.to_row should drop server fields and encode nested payloads."""
    block = Block(
        id="b1",
        name="A",
        farm_id="f1",
        coordinates=[(0, 0), (1, 0), (1, 1)],
        last_application=LastApplication("Ureia", 10.0, 99.5, "2024-01-02"),
        created_at="2024-01-01",
    )

    row = block.to_row()

    assert "id" not in row
    assert "criado_em" not in row
    assert row["fazenda_id"] == "f1"
    assert row["coordenadas"] == [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0]]
    assert row["ultima_aplicacao"] == {
        "produto": "Ureia",
        "litros": 10.0,
        "valor": 99.5,
        "data": "2024-01-02",
    }
    assert block.to_row(include_server_fields=True)["id"] == "b1"


def test_columns_for_skips_unknown_attributes() -> None:
    """columns_for should drop keys that have no stored column."""
    payload = Block.columns_for({"name": "A", "cane_age": "fallow", "notes": "x"})

    assert payload == {"nome": "A"}


def test_last_application_from_json_rejects_missing_product() -> None:
    """LastApplication.from_json should return None without a product."""
    assert LastApplication.from_json(None) is None
    assert LastApplication.from_json("{oops") is None
    assert LastApplication.from_json({"litros": 3}) is None
    parsed = LastApplication.from_json('{"produto": "Vinhaça"}')
    assert parsed.product == "Vinhaça"
    assert parsed.liters == 0.0


def test_farm_display_name_includes_location() -> None:
    """Farm.display_name should append the location when present."""
    assert Farm(name="Santa Rita", location="Piracicaba").display_name == "Santa Rita - Piracicaba"
    assert Farm(name="Santa Rita").display_name == "Santa Rita"


def test_application_record_round_trip_keeps_numbers_as_floats() -> None:
    """ApplicationRecord.from_row should coerce numeric columns to float."""
    record = ApplicationRecord.from_row(
        {
            "id": "a1",
            "produto": "Ureia",
            "quantidade": "12.5",
            "valor": None,
            "bloco_alvo": "Bloco A",
            "data_aplicacao": "2024-05-01",
            "acres_aplicados": 3,
        }
    )

    assert record.quantity == 12.5
    assert record.value == 0.0
    assert record.acres_applied == 3.0
    row = record.to_row()
    assert "id" not in row
    assert row["produto"] == "Ureia"
    assert row["bloco_alvo"] == "Bloco A"
