from PySide6.QtCore import Qt
from PySide6.QtWidgets import QFileDialog, QLabel, QWidget
from qfluentwidgets import (
    ConfigItem,
    ExpandLayout,
    InfoBar,
    InfoBarPosition,
    LineEdit,
    OptionsSettingCard,
    PasswordLineEdit,
    PushSettingCard,
    RangeSettingCard,
    ScrollArea,
    SettingCard,
    SettingCardGroup,
    setTheme,
)
from qfluentwidgets import FluentIcon as FIF

from farmview.core.palette import TRANSPARENCY_PRESETS
from farmview.gui.components.base_interface import load_qss
from farmview.gui.config import ENV_BACKEND_URL, Language, cfg, tr, translator


class LineEditSettingCard(SettingCard):
    """Setting card with a line edit bound to a text config item."""

    def __init__(self, configItem: ConfigItem, icon, title, content=None, password=False, parent=None):
        super().__init__(icon, title, content, parent)
        self.configItem = configItem
        self.lineEdit = PasswordLineEdit(self) if password else LineEdit(self)
        self.lineEdit.setMinimumWidth(280)
        self.lineEdit.setText(cfg.get(configItem))
        self.hBoxLayout.addWidget(self.lineEdit, 0, Qt.AlignmentFlag.AlignRight)
        self.hBoxLayout.addSpacing(16)

        self.lineEdit.editingFinished.connect(self._on_editing_finished)
        configItem.valueChanged.connect(self._on_value_changed)

    def _on_editing_finished(self):
        cfg.set(self.configItem, self.lineEdit.text().strip())

    def _on_value_changed(self, value):
        if self.lineEdit.text() != value:
            self.lineEdit.setText(value)


class SettingsTab(ScrollArea):
    """
    Settings Interface.
    """

    def __init__(self, parent=None):
        super().__init__(parent)

        self.scrollWidget = QWidget()
        self.expandLayout = ExpandLayout(self.scrollWidget)

        self.setWidget(self.scrollWidget)
        self.setWidgetResizable(True)
        self.setObjectName("settingsInterface")

        self._init_ui()
        self._load_settings()
        self._connect_signals()

    def _init_ui(self):
        """Initialize UI controls."""
        self.setViewportMargins(0, 80, 0, 20)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)

        # --- Settings Header ---
        self.settingLabel = QLabel(tr("nav.settings"), self)
        self.settingLabel.setObjectName("settingLabel")
        self.settingLabel.move(36, 30)

        # --- General Group ---
        self.generalGroup = SettingCardGroup(
            tr("settings.group.general"), self.scrollWidget
        )

        self.themeCard = OptionsSettingCard(
            cfg.themeMode,
            FIF.BRUSH,
            tr("settings.label.theme"),
            tr("settings.desc.theme"),
            texts=[
                tr("settings.theme.light"),
                tr("settings.theme.dark"),
                tr("settings.theme.auto"),
            ],
            parent=self.generalGroup,
        )

        self.languageCard = OptionsSettingCard(
            cfg.language,
            FIF.LANGUAGE,
            tr("settings.label.language"),
            tr("settings.desc.language"),
            texts=[
                tr("settings.lang.auto"),
                tr("settings.lang.en"),
                tr("settings.lang.pt"),
                tr("settings.lang.es"),
            ],
            parent=self.generalGroup,
        )

        self.dataDirCard = PushSettingCard(
            tr("settings.btn.browse"),
            FIF.FOLDER,
            tr("settings.label.data_dir"),
            cfg.dataDir.value,
            self.generalGroup,
        )

        self.generalGroup.addSettingCard(self.themeCard)
        self.generalGroup.addSettingCard(self.languageCard)
        self.generalGroup.addSettingCard(self.dataDirCard)

        # --- Backend Group ---
        self.backendGroup = SettingCardGroup(
            tr("settings.group.backend"), self.scrollWidget
        )
        self.backendUrlCard = LineEditSettingCard(
            cfg.backendUrl,
            FIF.GLOBE,
            tr("settings.label.backend_url"),
            tr("settings.desc.backend_url").format(env=ENV_BACKEND_URL),
            parent=self.backendGroup,
        )
        self.backendKeyCard = LineEditSettingCard(
            cfg.backendKey,
            FIF.FINGERPRINT,
            tr("settings.label.backend_key"),
            tr("settings.desc.backend_key"),
            password=True,
            parent=self.backendGroup,
        )
        self.backendGroup.addSettingCard(self.backendUrlCard)
        self.backendGroup.addSettingCard(self.backendKeyCard)

        # --- Map Group ---
        self.mapGroup = SettingCardGroup(tr("settings.group.map"), self.scrollWidget)
        self.baseMapCard = OptionsSettingCard(
            cfg.baseMap,
            FIF.PHOTO,
            tr("settings.label.base_map"),
            tr("settings.desc.base_map"),
            texts=[
                tr("page.map.basemap.osm"),
                tr("page.map.basemap.satellite"),
                tr("page.map.basemap.none"),
            ],
            parent=self.mapGroup,
        )
        self.transparencyCard = OptionsSettingCard(
            cfg.defaultTransparency,
            FIF.PALETTE,
            tr("settings.label.transparency"),
            tr("settings.desc.transparency"),
            texts=[f"{int(value * 100)}%" for value in TRANSPARENCY_PRESETS],
            parent=self.mapGroup,
        )
        self.snapCard = RangeSettingCard(
            cfg.snapPixels,
            FIF.PIN,
            tr("settings.label.snap"),
            tr("settings.desc.snap"),
            parent=self.mapGroup,
        )
        self.mapGroup.addSettingCard(self.baseMapCard)
        self.mapGroup.addSettingCard(self.transparencyCard)
        self.mapGroup.addSettingCard(self.snapCard)

        # --- Company Group ---
        self.companyGroup = SettingCardGroup(
            tr("settings.group.company"), self.scrollWidget
        )
        self.companyNameCard = LineEditSettingCard(
            cfg.companyName, FIF.HOME, tr("settings.label.company_name"), parent=self.companyGroup
        )
        self.companyTaxIdCard = LineEditSettingCard(
            cfg.companyTaxId, FIF.DOCUMENT, tr("settings.label.company_tax_id"), parent=self.companyGroup
        )
        self.companyIndustryCard = LineEditSettingCard(
            cfg.companyIndustry, FIF.TAG, tr("settings.label.company_industry"), parent=self.companyGroup
        )
        self.companyLocationCard = LineEditSettingCard(
            cfg.companyLocation, FIF.GLOBE, tr("settings.label.company_location"), parent=self.companyGroup
        )
        for card in (
            self.companyNameCard,
            self.companyTaxIdCard,
            self.companyIndustryCard,
            self.companyLocationCard,
        ):
            self.companyGroup.addSettingCard(card)

        # --- Add Groups to Layout ---
        self.expandLayout.setSpacing(28)
        self.expandLayout.setContentsMargins(36, 10, 36, 0)
        self.expandLayout.addWidget(self.generalGroup)
        self.expandLayout.addWidget(self.backendGroup)
        self.expandLayout.addWidget(self.mapGroup)
        self.expandLayout.addWidget(self.companyGroup)

        self.scrollWidget.setObjectName("scrollWidget")
        self.setQss()

    def _load_settings(self):
        if not cfg.dataDir.value:
            self.dataDirCard.setContent(tr("settings.placeholder.no_dir"))
        else:
            self.dataDirCard.setContent(cfg.dataDir.value)

    def _connect_signals(self):
        """Connect signals."""
        self.dataDirCard.clicked.connect(self._browse_data_dir)
        cfg.themeChanged.connect(self.setQss)
        cfg.themeChanged.connect(setTheme)
        cfg.language.valueChanged.connect(self.setLanguage)
        cfg.backendUrl.valueChanged.connect(self._on_restart_needed)
        cfg.backendKey.valueChanged.connect(self._on_restart_needed)

    def _browse_data_dir(self):
        """Open file dialog to select the data directory."""
        directory = QFileDialog.getExistingDirectory(
            self, tr("settings.btn.browse"), cfg.dataDir.value
        )
        if directory:
            self.dataDirCard.setContent(directory)
            cfg.set(cfg.dataDir, directory)

    def _on_restart_needed(self, *_args):
        """Show restart warning."""
        InfoBar.warning(
            title=tr("settings.msg.restart_title"),
            content=tr("settings.msg.restart"),
            orient=Qt.Orientation.Horizontal,
            isClosable=True,
            position=InfoBarPosition.TOP_RIGHT,
            duration=5000,
            parent=self,
        )

    def setQss(self):
        """Apply QSS."""
        self.setStyleSheet(load_qss("setting_interface"))

    def setLanguage(self, language: Language):
        """Set language."""
        translator.set_language(language)
        self._on_restart_needed()
