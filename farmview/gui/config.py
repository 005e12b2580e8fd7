import json
import os
from enum import Enum
from pathlib import Path
from typing import Dict

from loguru import logger
from PySide6.QtCore import QLocale, QObject
from qfluentwidgets import (
    ConfigItem,
    EnumSerializer,
    FolderValidator,
    OptionsConfigItem,
    OptionsValidator,
    QConfig,
    RangeConfigItem,
    RangeValidator,
    Theme,
    qconfig,
)

from farmview import __version__
from farmview.core.palette import TRANSPARENCY_PRESETS

ENV_BACKEND_URL = "FARMVIEW_SUPABASE_URL"
ENV_BACKEND_KEY = "FARMVIEW_SUPABASE_KEY"


class Language(Enum):
    """Language enumeration."""
    AUTO = "Auto"
    ENGLISH = "en_US"
    PORTUGUESE = "pt_BR"
    SPANISH = "es_ES"


class BaseMap(Enum):
    """Map background layer."""
    OSM = "osm"
    SATELLITE = "satellite"
    NONE = "none"


class Config(QConfig):
    """
    Configuration for the application.
    """

    # Theme Mode: Light, Dark, Auto
    themeMode = OptionsConfigItem(
        "General", "ThemeMode", Theme.AUTO, OptionsValidator(Theme), EnumSerializer(Theme), restart=False
    )

    # Language: Auto, English, Portuguese, Spanish
    language = OptionsConfigItem(
        "General", "Language", Language.AUTO, OptionsValidator(Language), EnumSerializer(Language), restart=True
    )

    # Local files (team roster, log)
    dataDir = ConfigItem(
        "General", "DataDir", str(Path.home() / ".farmview"), FolderValidator()
    )

    # Hosted database
    backendUrl = ConfigItem("Backend", "Url", "")
    backendKey = ConfigItem("Backend", "ApiKey", "")

    # Map editor
    baseMap = OptionsConfigItem(
        "Map", "BaseMap", BaseMap.OSM, OptionsValidator(BaseMap), EnumSerializer(BaseMap)
    )
    defaultTransparency = OptionsConfigItem(
        "Map", "DefaultTransparency", 0.4, OptionsValidator(list(TRANSPARENCY_PRESETS))
    )
    snapPixels = RangeConfigItem("Map", "SnapPixels", 10, RangeValidator(2, 40))

    # Company information
    companyName = ConfigItem("Company", "Name", "YOTE Farmview")
    companyTaxId = ConfigItem("Company", "TaxId", "33-4462377")
    companyIndustry = ConfigItem("Company", "Industry", "Agricultural Technology")
    companyLocation = ConfigItem("Company", "Location", "United States")


def backend_settings() -> tuple[str, str]:
    """Return ``(url, api_key)``; environment variables win over stored values."""
    url = os.environ.get(ENV_BACKEND_URL) or cfg.get(cfg.backendUrl)
    key = os.environ.get(ENV_BACKEND_KEY) or cfg.get(cfg.backendKey)
    return url, key


def data_dir() -> Path:
    path = Path(cfg.get(cfg.dataDir))
    path.mkdir(parents=True, exist_ok=True)
    return path


class Translator(QObject):
    """
    Manages application translations.
    """

    def __init__(self):
        super().__init__()
        self._current_language = self.get_language(cfg.get(cfg.language))
        logger.info(f"Current language from config: {self._current_language}")
        self._translations: Dict[Language, Dict[str, str]] = {}
        self._load_translations()

    def _load_translations(self):
        """Load all translation files from the i18n directory."""
        locales_dir = Path(__file__).parent / "resource" / "i18n"
        if not locales_dir.exists():
            logger.error(f"Locales directory not found: {locales_dir}")
            return

        for file_path in locales_dir.glob("*.json"):
            try:
                lang = Language(file_path.stem)
                with open(file_path, "r", encoding="utf-8") as f:
                    self._translations[lang] = json.load(f)
                logger.debug(f"Loaded translations for: {lang.name}")
            except (ValueError, OSError) as e:
                logger.error(f"Failed to load translation {file_path}: {e}")

    def get_language(self, language: Language) -> Language:
        """Resolve ``AUTO`` against the system locale."""
        if language == Language.AUTO:
            locale = QLocale.system().name()  # e.g. pt_BR
            if locale.startswith("pt"):
                return Language.PORTUGUESE
            if locale.startswith("es"):
                return Language.SPANISH
            return Language.ENGLISH
        return language

    def set_language(self, language: Language):
        language = self.get_language(language)
        if language == self._current_language:
            return
        self._current_language = language
        logger.info(f"Language switched to: {language}")

    @property
    def language(self) -> Language:
        return self._current_language

    def tr(self, key: str) -> str:
        """
        Get translated string for the given key.

        If translation is missing for current language, falls back to English,
        then to the key itself.
        """
        result = self._translations.get(self._current_language, {}).get(key)
        if result is not None:
            return result

        if self._current_language != Language.ENGLISH:
            result = self._translations.get(Language.ENGLISH, {}).get(key)
            if result is not None:
                return result

        return key


VERSION = __version__

cfg = Config()
qconfig.load('config.json', cfg)

# Global instance
translator = Translator()


def tr(key: str) -> str:
    """Helper function to translate a key using the global translator."""
    return translator.tr(key)
