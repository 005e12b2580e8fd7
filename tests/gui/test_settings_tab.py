"""Tests for the settings page."""

from __future__ import annotations

from farmview.gui.config import cfg
from farmview.gui.tabs.settings import SettingsTab


def test_settings_cards_reflect_config(qtbot) -> None:
    """Setting cards should be built from the current configuration."""
    tab = SettingsTab()
    qtbot.addWidget(tab)

    assert tab.backendUrlCard.lineEdit.text() == cfg.get(cfg.backendUrl)
    assert tab.companyNameCard.lineEdit.text() == cfg.get(cfg.companyName)
    assert tab.dataDirCard.contentLabel.text() != ""
    assert tab.snapCard is not None
