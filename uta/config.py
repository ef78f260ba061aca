from __future__ import annotations

import json
from dataclasses import dataclass
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/110.0.0.0 Safari/537.36"
)

LANGS = ("EN", "RU")


def _config_dir() -> Path:
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "uta"
    return Path.home() / ".config" / "uta"


def _config_file() -> Path:
    return _config_dir() / "config.json"


@dataclass(frozen=True)
class AppConfig:
    # Storage
    data_dir: Path
    cache_db_path: Path
    config_dir: Path
    output_dir: Path

    # Locale
    lang: str

    # Catalog API
    request_timeout_s: float
    token_ttl_s: int
    storefront: str | None  # overrides /v1/me/storefront
    language: str | None  # overrides the storefront default language
    user_agent: str


def load_config() -> AppConfig:
    # XDG base dir fallback
    xdg = os.getenv("XDG_CACHE_HOME")
    data_dir = Path(xdg) if xdg else Path.home() / ".cache"
    data_dir = data_dir / "uta"

    config_dir = _config_dir()
    lang = _load_lang(config_dir)

    return AppConfig(
        data_dir=data_dir,
        cache_db_path=data_dir / "cache.sqlite3",
        config_dir=config_dir,
        output_dir=Path(os.getenv("UTA_OUTPUT_DIR", ".")),
        lang=lang,
        request_timeout_s=float(os.getenv("UTA_REQUEST_TIMEOUT", "10.0")),
        token_ttl_s=int(os.getenv("UTA_TOKEN_TTL", "43200")),
        storefront=os.getenv("UTA_STOREFRONT") or None,
        language=os.getenv("UTA_LANGUAGE") or None,
        user_agent=os.getenv("UTA_USER_AGENT") or DEFAULT_USER_AGENT,
    )


def _read_config_json(cfg_path: Path) -> dict:
    if not cfg_path.exists():
        return {}
    try:
        data = json.loads(cfg_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable config %s: %s", cfg_path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _load_lang(config_dir: Path) -> str:
    # Priority: config.json → UTA_LANG → "EN"
    raw = str(_read_config_json(config_dir / "config.json").get("lang") or "").upper()
    if raw in LANGS:
        return raw
    env_lang = os.getenv("UTA_LANG")
    if env_lang and env_lang.upper() in LANGS:
        return env_lang.upper()
    return "EN"


def save_config_lang(lang: str) -> None:
    cfg_path = _config_file()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    data = _read_config_json(cfg_path)
    data["lang"] = lang.upper()
    cfg_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
