"""Dashboard bar charts drawn with pyqtgraph."""

from __future__ import annotations

from typing import Optional

import darkdetect
import numpy as np
import pandas as pd
import pyqtgraph as pg
from PySide6.QtGui import QColor
from PySide6.QtWidgets import QVBoxLayout, QWidget
from qfluentwidgets import StrongBodyLabel, Theme

from farmview.gui.config import cfg


def _plot_theme_palette(is_dark: bool) -> dict[str, str]:
    """Return plot color palette for current theme.

    Parameters
    ----------
    is_dark : bool
        Whether current UI theme is dark.

    Returns
    -------
    dict[str, str]
        Color tokens for plot background, axis foreground and bars.
    """
    if is_dark:
        return {
            "background": "#272727",
            "axis": "#D0D0D0",
            "bar": "#34D399",
        }
    return {
        "background": "#FFFFFF",
        "axis": "#404040",
        "bar": "#10B981",
    }


class BarChart(QWidget):
    """Titled bar chart of one labelled series.

    Parameters
    ----------
    title : str
        Caption above the plot.
    horizontal : bool, optional
        Draw bars left to right, suited to long category names.
    parent : QWidget, optional
        Parent widget for Qt ownership.
    """

    def __init__(
        self, title: str, horizontal: bool = False, parent: Optional[QWidget] = None
    ) -> None:
        super().__init__(parent)
        self.horizontal = horizontal
        self.title_label = StrongBodyLabel(title, self)
        self.plot_widget = pg.PlotWidget(self)
        self.bar_item: pg.BarGraphItem | None = None
        self._series = pd.Series(dtype=float)
        self._init_ui()
        self._apply_theme()
        cfg.themeChanged.connect(self._apply_theme)

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(6, 6, 6, 6)
        layout.setSpacing(4)
        self.plot_widget.showGrid(x=self.horizontal, y=not self.horizontal, alpha=0.2)
        self.plot_widget.setMouseEnabled(x=False, y=False)
        self.plot_widget.hideButtons()
        self.plot_widget.setMinimumHeight(200)
        layout.addWidget(self.title_label)
        layout.addWidget(self.plot_widget)

    def _is_dark_theme(self) -> bool:
        theme = cfg.themeMode.value
        if theme == Theme.AUTO:
            return bool(darkdetect.isDark())
        return theme == Theme.DARK

    def _apply_theme(self) -> None:
        """Apply plot colors to match app light/dark themes."""
        palette = _plot_theme_palette(self._is_dark_theme())
        self.plot_widget.setBackground(QColor(palette["background"]))
        axis_pen = pg.mkPen(color=palette["axis"], width=1)
        for axis_name in ("left", "bottom"):
            axis_item = self.plot_widget.getPlotItem().getAxis(axis_name)
            axis_item.setPen(axis_pen)
            axis_item.setTextPen(axis_pen)
        self._draw()

    def set_series(self, series: pd.Series) -> None:
        """Show ``series`` values as bars labelled by its index."""
        self._series = series if series is not None else pd.Series(dtype=float)
        self._draw()

    def series(self) -> pd.Series:
        return self._series

    def _draw(self) -> None:
        if self.bar_item is not None:
            self.plot_widget.removeItem(self.bar_item)
            self.bar_item = None

        labels = [str(label) for label in self._series.index]
        values = np.asarray(self._series.values, dtype=float)
        positions = np.arange(len(values), dtype=float)
        category_axis = self.plot_widget.getPlotItem().getAxis(
            "left" if self.horizontal else "bottom"
        )
        category_axis.setTicks([list(zip(positions.tolist(), labels))])
        if len(values) == 0:
            return

        brush = pg.mkBrush(_plot_theme_palette(self._is_dark_theme())["bar"])
        if self.horizontal:
            self.bar_item = pg.BarGraphItem(
                x0=0, y=positions, height=0.6, width=values, brush=brush
            )
        else:
            self.bar_item = pg.BarGraphItem(
                x=positions, height=values, width=0.6, brush=brush
            )
        self.plot_widget.addItem(self.bar_item)
        self.plot_widget.autoRange()
