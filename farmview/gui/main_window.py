from typing import Optional

from loguru import logger
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import QApplication
from qfluentwidgets import (
    FluentWindow,
    InfoBar,
    NavigationItemPosition,
    FluentIcon as FIF,
    setTheme,
)

from farmview.gui.config import cfg, tr
from farmview.gui.context import AppContext
from farmview.gui.tabs.applications import ApplicationsTab
from farmview.gui.tabs.dashboard import DashboardTab
from farmview.gui.tabs.farms import FarmsTab
from farmview.gui.tabs.map_editor import MapEditorTab
from farmview.gui.tabs.settings import SettingsTab
from farmview.gui.tabs.team import TeamTab


class MainWindow(FluentWindow):
    """
    Main Window using Fluent Design.
    """

    def __init__(self, context: Optional[AppContext] = None, load_tiles: bool = True):
        super().__init__()
        self.context = context or AppContext.from_config()

        # Create interfaces
        self.dashboard_tab = DashboardTab(self.context, self)
        self.farms_tab = FarmsTab(self.context, self)
        self.map_tab = MapEditorTab(self.context, self, load_tiles=load_tiles)
        self.applications_tab = ApplicationsTab(self.context, self)
        self.team_tab = TeamTab(self.context, self)
        self.settings_tab = SettingsTab(self)

        # Set object names for FluentWindow navigation
        self.dashboard_tab.setObjectName("dashboard_tab")
        self.farms_tab.setObjectName("farms_tab")
        self.map_tab.setObjectName("map_tab")
        self.applications_tab.setObjectName("applications_tab")
        self.team_tab.setObjectName("team_tab")
        self.settings_tab.setObjectName("settings_tab")

        self.init_navigation()
        self.init_window()

        logger.info("MainWindow initialized successfully")

    def init_navigation(self):
        self.addSubInterface(self.dashboard_tab, FIF.HOME, tr("nav.dashboard"))
        self.addSubInterface(self.farms_tab, FIF.LEAF, tr("nav.farms"))
        self.addSubInterface(self.map_tab, FIF.EDIT, tr("nav.map"))
        self.addSubInterface(self.applications_tab, FIF.HISTORY, tr("nav.applications"))
        self.addSubInterface(self.team_tab, FIF.PEOPLE, tr("nav.team"))

        self.navigationInterface.addSeparator()

        self.addSubInterface(
            self.settings_tab,
            FIF.SETTING,
            tr("nav.settings"),
            NavigationItemPosition.BOTTOM
        )

        # NOTE: enable acrylic effect
        self.navigationInterface.setAcrylicEnabled(True)

    def init_window(self):
        self.resize(1280, 820)
        self.setWindowIcon(QIcon(":/qfluentwidgets/images/logo.png"))
        self.setWindowTitle(tr("app.title"))

        # Apply Theme
        setTheme(cfg.get(cfg.themeMode))

        # Center window
        desktop = QApplication.primaryScreen().availableGeometry()
        w, h = desktop.width(), desktop.height()
        self.move(w//2 - self.width()//2, h//2 - self.height()//2)

        self.navigationInterface.setMinimumExpandWidth(600)
        self.navigationInterface.setExpandWidth(200)

    def load_data(self) -> None:
        """Fetch farms and applications; report an unreachable backend."""
        if not self.context.client.is_configured():
            InfoBar.warning(
                title=tr("warning"),
                content=tr("app.msg.backend_missing"),
                parent=self,
                duration=8000,
            )
            return
        self.context.reload()
        error = self.context.farms.error or self.context.applications.error
        if error:
            InfoBar.error(title=tr("error"), content=error, parent=self, duration=8000)

    def closeEvent(self, event):
        logger.info("MainWindow closing")
        self.map_tab.map_component.cleanup()
        super().closeEvent(event)
