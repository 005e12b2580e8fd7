"""Tests for the colour and layer check lists."""

from __future__ import annotations

from PySide6.QtCore import Qt

from farmview.core.color_filter import ColorFilter
from farmview.core.models import Block
from farmview.gui.components.layer_panel import ColorLayerPanel


def _panel(qtbot) -> ColorLayerPanel:
    color_filter = ColorFilter(
        [
            Block(id="a", name="A", color="#10B981"),
            Block(id="b", name="B", color="#ef4444"),
            Block(id="c", name="C", color="#10B981"),
        ]
    )
    panel = ColorLayerPanel(color_filter)
    qtbot.addWidget(panel)
    panel.refresh_colors()
    return panel


def test_refresh_lists_each_colour_once(qtbot) -> None:
    """Colour items should be unique, checked and counted."""
    panel = _panel(qtbot)

    green = panel.color_item("#10b981")
    red = panel.color_item("#EF4444")
    assert green is not None and red is not None
    assert green.checkState(0) == Qt.CheckState.Checked
    assert "(2)" in green.text(0)
    assert green.data(0, Qt.ItemDataRole.UserRole) == "#10B981"
    assert "3" in panel.count_label.text()


def test_unchecking_colour_filters_blocks(qtbot) -> None:
    """Unchecking a colour should hide its blocks and notify."""
    panel = _panel(qtbot)

    with qtbot.waitSignal(panel.sigColorFilterChanged):
        panel.color_item("#10B981").setCheckState(0, Qt.CheckState.Unchecked)

    assert [b.id for b in panel.color_filter.filtered_blocks] == ["b"]
    assert "1" in panel.count_label.text()


def test_show_all_restores_selection(qtbot) -> None:
    """Show all should re-check every colour."""
    panel = _panel(qtbot)
    panel.color_filter.set_selected([])
    panel.refresh_colors()

    with qtbot.waitSignal(panel.sigColorFilterChanged):
        panel.btn_all.click()

    assert panel.color_filter.visible_blocks == 3
    assert panel.color_item("#EF4444").checkState(0) == Qt.CheckState.Checked


def test_layer_toggle_emits_visibility(qtbot) -> None:
    """Layer items should report visibility changes."""
    panel = _panel(qtbot)

    with qtbot.waitSignal(panel.sigLayerVisibilityChanged) as blocker:
        panel.layer_item("labels").setCheckState(0, Qt.CheckState.Unchecked)

    assert blocker.args == ["labels", False]


def test_set_layer_checked_is_silent(qtbot) -> None:
    """Programmatic layer checks should not echo the signal."""
    panel = _panel(qtbot)
    seen = []
    panel.sigLayerVisibilityChanged.connect(lambda name, visible: seen.append(name))

    panel.set_layer_checked("ndvi", True)

    assert panel.layer_item("ndvi").checkState(0) == Qt.CheckState.Checked
    assert seen == []
