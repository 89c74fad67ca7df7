"""Configuration management for the court records harvester.

This module loads configuration from TOML files if present:
- `config.private.toml` (local, not checked into VCS)
- `config.toml` (project-level)

Values are read from the loaded config first, then fall back to
environment variables (optional), then to built-in defaults.
"""

import os
import tomllib
from pathlib import Path
from typing import List, Optional

# Default values
DEFAULT_BASE_URL = "https://www.xn--90afdbaav0bd1afy6eub5d.xn--p1ai"
DEFAULT_SEARCH_PATH = "/extended-search"

DEFAULT_HEADLESS = True
DEFAULT_PAGE_LOAD_TIMEOUT = 60
DEFAULT_WAIT_TIMEOUT_SECONDS = 30
DEFAULT_DROPDOWN_TIMEOUT_SECONDS = 15
DEFAULT_TREE_TIMEOUT_SECONDS = 15
DEFAULT_MAX_DRIVER_RESTARTS = 1

DEFAULT_MAX_PAGES = 1
DEFAULT_PARSE_RETRIES = 3
DEFAULT_PARSE_RETRY_DELAY_SECONDS = 2.0
DEFAULT_CASE_DELAY_SECONDS = 3.0
DEFAULT_SETTLE_SECONDS = 0.0
DEFAULT_BACKOFF_FACTOR = 1.0
DEFAULT_MAX_BACKOFF_SECONDS = 60.0

# Search filters: first instance civil cases, property disputes,
# claims for recovery of sums under loan/credit agreements.
DEFAULT_CASE_TYPE = "gr_first"
DEFAULT_CATEGORY = "46"
DEFAULT_SUBCATEGORY = "53"
DEFAULT_CATEGORY_LABEL = "Имущественные споры"
DEFAULT_SUBCATEGORY_LABEL = "Иски о взыскании сумм по договору займа, кредитному договору"

DEFAULT_OUTPUT_DIR = "output"
DEFAULT_TOPIC = "court-cases"
DEFAULT_PUBLISH_RETRIES = 3
DEFAULT_PUBLISH_BACKOFF_SECONDS = 2.0
DEFAULT_CHANNEL_PARTITIONS = 3
DEFAULT_CHANNEL_REPLICATION = 1
DEFAULT_CHANNEL_RETENTION_MS = 604800000

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = "logs/harvester.log"

DEFAULT_REGIONS = ["Республика Татарстан"]
DEFAULT_SCHEDULE_EVERY = "every 5 minutes"


def _load_toml_config() -> dict:
    """Load config from `config.private.toml` then `config.toml` if available.

    Returns a dict with merged values (private overrides project file).
    """
    cfg: dict = {}

    cwd = Path.cwd()
    # project file first, private file last so it wins
    for fname in ("config.toml", "config.private.toml"):
        p = cwd / fname
        if p.exists():
            try:
                with open(p, "rb") as f:
                    data = tomllib.load(f)
                    if isinstance(data, dict):
                        # shallow merge
                        for k, v in data.items():
                            if isinstance(v, dict) and k in cfg and isinstance(cfg[k], dict):
                                cfg[k].update(v)
                            else:
                                cfg[k] = v
            except (OSError, tomllib.TOMLDecodeError):
                # unreadable file: fall back to env and defaults
                continue
    return cfg


_CONFIG = _load_toml_config()


def _get_from_config(section: str, key: str):
    try:
        return _CONFIG.get(section, {}).get(key)
    except Exception:
        return None


def _get_bool(section: str, key: str, env: str, default: bool) -> bool:
    val = _get_from_config(section, key)
    if val is None:
        val = os.getenv(env)
    if isinstance(val, str):
        return val.lower() == "true"
    return bool(val) if val is not None else default


class Config:
    """Configuration accessors.

    Every accessor prefers the TOML value, then the `COURT_*` environment
    variable, then the module default.
    """

    @classmethod
    def get_base_url(cls) -> str:
        return (
            _get_from_config("site", "base_url")
            or os.getenv("COURT_BASE_URL")
            or DEFAULT_BASE_URL
        ).rstrip("/")

    @classmethod
    def get_search_url(cls) -> str:
        path = (
            _get_from_config("site", "search_path")
            or os.getenv("COURT_SEARCH_PATH")
            or DEFAULT_SEARCH_PATH
        )
        return cls.get_base_url() + path

    @classmethod
    def get_headless(cls) -> bool:
        return _get_bool("browser", "headless", "COURT_HEADLESS", DEFAULT_HEADLESS)

    @classmethod
    def get_page_load_timeout(cls) -> int:
        return int(
            _get_from_config("browser", "page_load_timeout")
            or os.getenv("COURT_PAGE_LOAD_TIMEOUT")
            or DEFAULT_PAGE_LOAD_TIMEOUT
        )

    @classmethod
    def get_wait_timeout_seconds(cls) -> float:
        return float(
            _get_from_config("browser", "wait_timeout_seconds")
            or os.getenv("COURT_WAIT_TIMEOUT_SECONDS")
            or DEFAULT_WAIT_TIMEOUT_SECONDS
        )

    @classmethod
    def get_dropdown_timeout_seconds(cls) -> float:
        return float(
            _get_from_config("browser", "dropdown_timeout_seconds")
            or os.getenv("COURT_DROPDOWN_TIMEOUT_SECONDS")
            or DEFAULT_DROPDOWN_TIMEOUT_SECONDS
        )

    @classmethod
    def get_tree_timeout_seconds(cls) -> float:
        return float(
            _get_from_config("browser", "tree_timeout_seconds")
            or os.getenv("COURT_TREE_TIMEOUT_SECONDS")
            or DEFAULT_TREE_TIMEOUT_SECONDS
        )

    @classmethod
    def get_max_driver_restarts(cls) -> int:
        return int(
            _get_from_config("browser", "max_driver_restarts")
            or os.getenv("COURT_MAX_DRIVER_RESTARTS")
            or DEFAULT_MAX_DRIVER_RESTARTS
        )

    @classmethod
    def get_max_pages(cls) -> int:
        return int(
            _get_from_config("crawl", "max_pages")
            or os.getenv("COURT_MAX_PAGES")
            or DEFAULT_MAX_PAGES
        )

    @classmethod
    def get_parse_retries(cls) -> int:
        return int(
            _get_from_config("crawl", "parse_retries")
            or os.getenv("COURT_PARSE_RETRIES")
            or DEFAULT_PARSE_RETRIES
        )

    @classmethod
    def get_parse_retry_delay_seconds(cls) -> float:
        val = _get_from_config("crawl", "parse_retry_delay_seconds")
        if val is None:
            val = os.getenv("COURT_PARSE_RETRY_DELAY_SECONDS")
        return float(val) if val is not None else DEFAULT_PARSE_RETRY_DELAY_SECONDS

    @classmethod
    def get_case_delay_seconds(cls) -> float:
        val = _get_from_config("crawl", "case_delay_seconds")
        if val is None:
            val = os.getenv("COURT_CASE_DELAY_SECONDS")
        return float(val) if val is not None else DEFAULT_CASE_DELAY_SECONDS

    @classmethod
    def get_settle_seconds(cls) -> float:
        val = _get_from_config("crawl", "settle_seconds")
        if val is None:
            val = os.getenv("COURT_SETTLE_SECONDS")
        return float(val) if val is not None else DEFAULT_SETTLE_SECONDS

    @classmethod
    def get_backoff_factor(cls) -> float:
        return float(
            _get_from_config("crawl", "backoff_factor")
            or os.getenv("COURT_BACKOFF_FACTOR")
            or DEFAULT_BACKOFF_FACTOR
        )

    @classmethod
    def get_max_backoff_seconds(cls) -> float:
        return float(
            _get_from_config("crawl", "max_backoff_seconds")
            or os.getenv("COURT_MAX_BACKOFF_SECONDS")
            or DEFAULT_MAX_BACKOFF_SECONDS
        )

    @classmethod
    def get_case_type(cls) -> str:
        return (
            _get_from_config("search", "case_type")
            or os.getenv("COURT_CASE_TYPE")
            or DEFAULT_CASE_TYPE
        )

    @classmethod
    def get_category(cls) -> str:
        return str(
            _get_from_config("search", "category")
            or os.getenv("COURT_CATEGORY")
            or DEFAULT_CATEGORY
        )

    @classmethod
    def get_subcategory(cls) -> str:
        return str(
            _get_from_config("search", "subcategory")
            or os.getenv("COURT_SUBCATEGORY")
            or DEFAULT_SUBCATEGORY
        )

    @classmethod
    def get_category_label(cls) -> str:
        return (
            _get_from_config("search", "category_label")
            or os.getenv("COURT_CATEGORY_LABEL")
            or DEFAULT_CATEGORY_LABEL
        )

    @classmethod
    def get_subcategory_label(cls) -> str:
        return (
            _get_from_config("search", "subcategory_label")
            or os.getenv("COURT_SUBCATEGORY_LABEL")
            or DEFAULT_SUBCATEGORY_LABEL
        )

    @classmethod
    def get_output_dir(cls) -> str:
        return (
            _get_from_config("sink", "output_dir")
            or os.getenv("COURT_OUTPUT_DIR")
            or DEFAULT_OUTPUT_DIR
        )

    @classmethod
    def get_topic(cls) -> str:
        return (
            _get_from_config("sink", "topic")
            or os.getenv("COURT_TOPIC")
            or DEFAULT_TOPIC
        )

    @classmethod
    def get_publish_retries(cls) -> int:
        return int(
            _get_from_config("sink", "publish_retries")
            or os.getenv("COURT_PUBLISH_RETRIES")
            or DEFAULT_PUBLISH_RETRIES
        )

    @classmethod
    def get_publish_backoff_seconds(cls) -> float:
        val = _get_from_config("sink", "publish_backoff_seconds")
        if val is None:
            val = os.getenv("COURT_PUBLISH_BACKOFF_SECONDS")
        return float(val) if val is not None else DEFAULT_PUBLISH_BACKOFF_SECONDS

    @classmethod
    def get_channel_settings(cls) -> dict:
        return {
            "partitions": int(
                _get_from_config("sink", "partitions") or DEFAULT_CHANNEL_PARTITIONS
            ),
            "replication": int(
                _get_from_config("sink", "replication") or DEFAULT_CHANNEL_REPLICATION
            ),
            "retention_ms": int(
                _get_from_config("sink", "retention_ms") or DEFAULT_CHANNEL_RETENTION_MS
            ),
        }

    @classmethod
    def get_log_level(cls) -> str:
        return (
            _get_from_config("app", "log_level")
            or os.getenv("COURT_LOG_LEVEL")
            or DEFAULT_LOG_LEVEL
        )

    @classmethod
    def get_log_file(cls) -> Optional[str]:
        return (
            _get_from_config("app", "log_file")
            or os.getenv("COURT_LOG_FILE")
            or DEFAULT_LOG_FILE
        )

    @classmethod
    def get_regions(cls) -> List[str]:
        val = _get_from_config("schedule", "regions")
        if val is None:
            env = os.getenv("COURT_REGIONS")
            if env:
                val = [r.strip() for r in env.split(",") if r.strip()]
        if isinstance(val, list) and val:
            return [str(r) for r in val]
        return list(DEFAULT_REGIONS)

    @classmethod
    def get_schedule_every(cls) -> str:
        return (
            _get_from_config("schedule", "every")
            or os.getenv("COURT_SCHEDULE_EVERY")
            or DEFAULT_SCHEDULE_EVERY
        )
