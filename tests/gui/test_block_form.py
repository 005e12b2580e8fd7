"""Tests for the block metadata panel."""

from __future__ import annotations

from farmview.core.blocks import validate_block_form
from farmview.core.models import Block, LastApplication
from farmview.gui.components.block_form import BlockFormPanel


def _block() -> Block:
    return Block(
        id="b1",
        name="Talhao 1",
        color="#ef4444",
        transparency=0.6,
        area_m2=4046.86,
        area_acres=1.0,
        perimeter=254.5,
        planting_date="2024-03-01",
        cane_variety="RB92579",
        next_harvest="2025-05-01",
        has_drain=True,
        last_application=LastApplication("Glifosato", 120.0, 350.5, "2024-04-10"),
    )


def test_starts_empty_and_disabled(qtbot) -> None:
    """A fresh panel should have no block and be disabled."""
    panel = BlockFormPanel()
    qtbot.addWidget(panel)

    assert panel.block_id is None
    assert panel.isEnabled() is False


def test_load_block_fills_form_values(qtbot) -> None:
    """Loading a block should fill every field of the form."""
    panel = BlockFormPanel()
    qtbot.addWidget(panel)

    panel.load_block(_block())
    values = panel.form_values()

    assert panel.block_id == "b1"
    assert panel.isEnabled() is True
    assert values["name"] == "Talhao 1"
    assert values["color"] == "#EF4444"
    assert values["transparency"] == 0.6
    assert values["planting_date"] == "2024-03-01"
    assert values["cane_variety"] == "RB92579"
    assert values["cane_age"] is None
    assert values["next_harvest"] == "2025-05-01"
    assert values["next_application"] == ""
    assert values["product"] == "Glifosato"
    assert values["liters"] == "120"
    assert values["value"] == "350.50"
    assert values["date"] == "2024-04-10"
    assert values["has_drain"] is True
    assert values["notes"] == ""
    assert "1.0000" in panel.lbl_area.text()


def test_save_emits_block_id_and_values(qtbot) -> None:
    """Save should emit the loaded block id with the edited values."""
    panel = BlockFormPanel()
    qtbot.addWidget(panel)
    panel.load_block(_block())
    panel.edit_name.setText("Renamed")

    with qtbot.waitSignal(panel.sigSaveRequested) as blocker:
        panel.btn_save.click()

    block_id, values = blocker.args
    assert block_id == "b1"
    assert values["name"] == "Renamed"


def test_save_without_block_is_ignored(qtbot) -> None:
    """Save should not emit while no block is loaded."""
    panel = BlockFormPanel()
    qtbot.addWidget(panel)
    seen = []
    panel.sigSaveRequested.connect(lambda block_id, values: seen.append(block_id))

    panel._on_save()

    assert seen == []


def test_clear_resets_fields(qtbot) -> None:
    """Clearing should drop the block and empty the inputs."""
    panel = BlockFormPanel()
    qtbot.addWidget(panel)
    panel.load_block(_block())

    panel.clear()

    assert panel.block_id is None
    assert panel.edit_name.text() == ""
    assert panel.edit_product.text() == ""
    assert panel.check_drain.isChecked() is False


def test_values_outside_presets_are_kept(qtbot) -> None:
    """Stored colour, transparency and variety should survive a save untouched."""
    panel = BlockFormPanel()
    qtbot.addWidget(panel)

    panel.load_block(Block(id="b2", name="Importado", color="#123456", transparency=0.5, cane_variety="CTC20"))
    cleaned = validate_block_form(panel.form_values())

    assert cleaned["color"] == "#123456"
    assert cleaned["transparency"] == 0.5
    assert cleaned["cane_variety"] == "CTC20"
    assert panel.combo_color.currentText() == "#123456"


def test_extra_items_do_not_accumulate(qtbot) -> None:
    """Loading another block should drop the previous non-preset items."""
    panel = BlockFormPanel()
    qtbot.addWidget(panel)
    preset_colors = panel.combo_color.count()

    panel.load_block(Block(id="b2", name="A", color="#123456", cane_variety="CTC20"))
    panel.load_block(_block())

    assert panel.combo_color.count() == preset_colors
    assert panel.form_values()["color"] == "#EF4444"
    assert panel.form_values()["cane_variety"] == "RB92579"
