"""
Minutas — Backend Configuration
Loads .env automatically, then reads all settings from environment variables.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)


@dataclass(frozen=True)
class ImportLimits:
    """Upper bounds for uploaded source documents."""
    max_import_bytes: int
    max_overlay_bytes: int


@dataclass(frozen=True)
class RenderConfig:
    """Locale, clock and layout defaults used while generating documents."""
    timezone: str
    locale: str
    indent_step: int
    max_indent: int
    default_font_size: float
    preview_dpi: int


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""
    host: str
    port: int
    debug: bool
    limits: ImportLimits
    render: RenderConfig
    soffice_bin: str
    conversion_timeout: float
    usage_retry_limit: int
    ocr_lang: str


def _load_config() -> AppConfig:
    return AppConfig(
        host=os.getenv("APP_HOST", "0.0.0.0"),
        port=int(os.getenv("APP_PORT", "8000")),
        debug=os.getenv("APP_DEBUG", "false").lower() == "true",
        limits=ImportLimits(
            max_import_bytes=int(float(os.getenv("MINUTAS_MAX_IMPORT_MB", "10")) * 1024 * 1024),
            max_overlay_bytes=int(float(os.getenv("MINUTAS_MAX_OVERLAY_MB", "20")) * 1024 * 1024),
        ),
        render=RenderConfig(
            timezone=os.getenv("MINUTAS_TIMEZONE", "Europe/Lisbon"),
            locale=os.getenv("MINUTAS_LOCALE", "pt_PT"),
            indent_step=int(os.getenv("MINUTAS_INDENT_STEP", "40")),
            max_indent=int(os.getenv("MINUTAS_MAX_INDENT", "200")),
            default_font_size=float(os.getenv("MINUTAS_DEFAULT_FONT_SIZE", "12")),
            preview_dpi=int(os.getenv("MINUTAS_PREVIEW_DPI", "150")),
        ),
        soffice_bin=os.getenv("MINUTAS_SOFFICE_BIN", "soffice"),
        conversion_timeout=float(os.getenv("MINUTAS_CONVERSION_TIMEOUT", "60")),
        usage_retry_limit=int(os.getenv("MINUTAS_USAGE_RETRY_LIMIT", "5")),
        ocr_lang=os.getenv("MINUTAS_OCR_LANG", "por"),
    )


settings = _load_config()
