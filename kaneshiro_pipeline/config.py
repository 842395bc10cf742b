"""Pipeline configuration: spreadsheet source, rule sets and header aliases."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlencode

import yaml

from kaneshiro_pipeline.domain.fields import DEFAULT_ALIASES, FieldAliases
from kaneshiro_pipeline.domain.subsidiary import SubsidiaryRules
from kaneshiro_pipeline.errors import ConfigError

logger = logging.getLogger(__name__)

ORDERS = "orders"
PAYOUTS = "payouts"
STAFF = "staff"
DATASETS: tuple[str, ...] = (ORDERS, PAYOUTS, STAFF)
DEFAULT_TABS: dict[str, str] = {
    ORDERS: "175091786",
    PAYOUTS: "425317715",
    STAFF: "0",
}
DEFAULT_BASE_URL = "https://docs.google.com/spreadsheets/d"
DEFAULT_CACHE_TTL = 5 * 60.0

ENV_SHEET_ID = "KANESHIRO_SHEET_ID"
ENV_CACHE_TTL = "KANESHIRO_CACHE_TTL"
ENV_FETCH_TIMEOUT = "KANESHIRO_FETCH_TIMEOUT"

ALIASES = {
    "tabs": {"deputies": STAFF},
}


def _parse_seconds(raw: Any, name: str, allow_none: bool = False) -> float | None:
    if raw is None or raw == "":
        if allow_none:
            return None
        raise ConfigError(f"{name} is required")
    try:
        seconds = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: {raw!r}") from exc
    if seconds < 0:
        raise ConfigError(f"{name} must be >= 0, got {seconds}")
    return seconds


def _apply_tab_aliases(tabs: Mapping[str, Any]) -> dict[str, str]:
    resolved = {str(key): str(value) for key, value in tabs.items()}
    for old_key, new_key in ALIASES["tabs"].items():
        if old_key in resolved and new_key not in resolved:
            resolved[new_key] = resolved.pop(old_key)
            logger.warning(
                "DEPRECATION: 'sheets.tabs.%s' renamed to 'sheets.tabs.%s'. Update your config.",
                old_key,
                new_key,
            )
    return resolved


@dataclass(frozen=True)
class SheetsConfig:
    """Where and how often to pull the three datasets."""

    sheet_id: str
    tabs: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_TABS))
    cache_ttl: float = DEFAULT_CACHE_TTL
    fetch_timeout: float | None = None
    base_url: str = DEFAULT_BASE_URL

    def __post_init__(self) -> None:
        if not str(self.sheet_id or "").strip():
            raise ConfigError("sheet_id is required")
        unknown = sorted(set(self.tabs).difference(DATASETS))
        if unknown:
            raise ConfigError(f"Unknown datasets in tabs: {unknown}")
        missing = sorted(set(DATASETS).difference(self.tabs))
        if missing:
            raise ConfigError(f"Missing tab ids for datasets: {missing}")
        _parse_seconds(self.cache_ttl, "cache_ttl")
        _parse_seconds(self.fetch_timeout, "fetch_timeout", allow_none=True)

    def export_url(self, dataset: str) -> str:
        if dataset not in self.tabs:
            raise ConfigError(f"Unknown dataset: {dataset!r}")
        query = urlencode({"format": "csv", "gid": self.tabs[dataset]})
        return f"{self.base_url.rstrip('/')}/{self.sheet_id}/export?{query}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SheetsConfig":
        env = os.environ if environ is None else environ
        ttl = _parse_seconds(env.get(ENV_CACHE_TTL, str(DEFAULT_CACHE_TTL)), ENV_CACHE_TTL)
        timeout = _parse_seconds(env.get(ENV_FETCH_TIMEOUT), ENV_FETCH_TIMEOUT, allow_none=True)
        return cls(sheet_id=env.get(ENV_SHEET_ID, ""), cache_ttl=float(ttl or 0.0), fetch_timeout=timeout)


@dataclass(frozen=True)
class PipelineConfig:
    sheets: SheetsConfig
    rules: SubsidiaryRules
    aliases: FieldAliases = DEFAULT_ALIASES


def _section(config: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = config.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return value


def parse_config(config: Mapping[str, Any]) -> PipelineConfig:
    sheets = _section(config, "sheets")
    if "sheet_id" not in sheets:
        raise ConfigError("Missing required config key: 'sheets.sheet_id'")

    tabs = dict(DEFAULT_TABS)
    tabs.update(_apply_tab_aliases(_section(sheets, "tabs")))
    timeout = _parse_seconds(sheets.get("fetch_timeout_seconds"), "sheets.fetch_timeout_seconds", allow_none=True)
    sheets_config = SheetsConfig(
        sheet_id=str(sheets["sheet_id"]),
        tabs=tabs,
        cache_ttl=float(
            _parse_seconds(sheets.get("cache_ttl_seconds", DEFAULT_CACHE_TTL), "sheets.cache_ttl_seconds") or 0.0
        ),
        fetch_timeout=timeout,
        base_url=str(sheets.get("base_url", DEFAULT_BASE_URL)),
    )

    rules = SubsidiaryRules()
    rules.load_config(_section(config, "subsidiary_rules"))

    try:
        aliases = DEFAULT_ALIASES.with_overrides(_section(config, "field_aliases"))
    except KeyError as exc:
        raise ConfigError(f"Invalid field_aliases: {exc}") from exc
    return PipelineConfig(sheets=sheets_config, rules=rules, aliases=aliases)


def load_config(path: str | Path) -> PipelineConfig:
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError(f"Config root must be a mapping: {config_path}")
    return parse_config(data)
