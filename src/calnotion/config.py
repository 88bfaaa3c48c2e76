from __future__ import annotations
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import yaml


class ConfigError(Exception):
    """Missing or invalid setup; raised before anything is written."""


@dataclass
class GoogleConfig:
    credentials_json: str
    token_json: str
    max_workers: int

@dataclass
class NotionConfig:
    database_id: str
    token: str
    page_size: int
    paginate: bool

@dataclass
class AppConfig:
    timezone: str
    exclude_path: str
    request_timeout_seconds: float
    google: GoogleConfig
    notion: NotionConfig

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

def _env(name: str, default: Any) -> Any:
    value = os.environ.get(name)
    return value if value else default

def load_config(path: Optional[str] = None) -> AppConfig:
    data: Dict[str, Any] = {}
    if path and Path(path).exists():
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file must be a mapping: {path}")

    google = data.get("google", {})
    notion = data.get("notion", {})

    cfg = AppConfig(
        timezone=str(_env("TIMEZONE", data.get("timezone", "UTC"))),
        exclude_path=str(_env("EXCLUDE_PATH", data.get("exclude_path", "exclude.json"))),
        request_timeout_seconds=float(data.get("request_timeout_seconds", 30)),
        google=GoogleConfig(
            credentials_json=str(_env("GOOGLE_CREDENTIALS_JSON", google.get("credentials_json", "credentials.json"))),
            token_json=str(_env("GOOGLE_TOKEN_JSON", google.get("token_json", "token.json"))),
            max_workers=int(google.get("max_workers", 8)),
        ),
        notion=NotionConfig(
            database_id=str(_env("NOTION_DB_ID", notion.get("database_id", ""))),
            token=os.environ.get("NOTION_TOKEN", ""),
            page_size=int(notion.get("page_size", 100)),
            paginate=bool(notion.get("paginate", True)),
        ),
    )

    try:
        ZoneInfo(cfg.timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Unknown timezone: {cfg.timezone!r}") from e
    return cfg

def require_sync_settings(cfg: AppConfig) -> None:
    if not cfg.notion.database_id:
        raise ConfigError("Notion database id not set (notion.database_id or NOTION_DB_ID)")
    if not cfg.notion.token:
        raise ConfigError("NOTION_TOKEN not set")

def load_excluded_names(path: str) -> FrozenSet[str]:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Exclusion list not found: {path}")
    # JSON is valid YAML, so {"exclude": [...]} files load as-is.
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Exclusion list must be a mapping with an 'exclude' key: {path}")
    return frozenset(str(name) for name in data.get("exclude") or [])
