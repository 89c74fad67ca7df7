import sys

import pytest
from loguru import logger

from court_harvest.lib import config as config_module
from court_harvest.lib.config import Config
from court_harvest.lib.logging_config import rotate_numbered_logs, setup_logging


@pytest.fixture
def empty_config(monkeypatch):
    monkeypatch.setattr(config_module, "_CONFIG", {})
    for name in (
        "COURT_BASE_URL",
        "COURT_SEARCH_PATH",
        "COURT_HEADLESS",
        "COURT_MAX_PAGES",
        "COURT_CASE_DELAY_SECONDS",
        "COURT_TOPIC",
        "COURT_REGIONS",
        "COURT_SCHEDULE_EVERY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_defaults(empty_config):
    assert Config.get_search_url() == config_module.DEFAULT_BASE_URL + "/extended-search"
    assert Config.get_headless() is True
    assert Config.get_max_pages() == 1
    assert Config.get_case_delay_seconds() == 3.0
    assert (Config.get_case_type(), Config.get_category(), Config.get_subcategory()) == ("gr_first", "46", "53")
    assert Config.get_regions() == ["Республика Татарстан"]
    assert Config.get_schedule_every() == "every 5 minutes"
    assert Config.get_channel_settings() == {"partitions": 3, "replication": 1, "retention_ms": 604800000}


def test_environment_overrides(empty_config, monkeypatch):
    monkeypatch.setenv("COURT_BASE_URL", "https://court.example/")
    monkeypatch.setenv("COURT_HEADLESS", "false")
    monkeypatch.setenv("COURT_MAX_PAGES", "4")
    monkeypatch.setenv("COURT_CASE_DELAY_SECONDS", "0")
    monkeypatch.setenv("COURT_REGIONS", "Калмыкия, Татарстан")

    assert Config.get_search_url() == "https://court.example/extended-search"
    assert Config.get_headless() is False
    assert Config.get_max_pages() == 4
    assert Config.get_case_delay_seconds() == 0.0
    assert Config.get_regions() == ["Калмыкия", "Татарстан"]


def test_toml_values_win_over_environment(monkeypatch):
    monkeypatch.setattr(
        config_module,
        "_CONFIG",
        {"crawl": {"max_pages": 7}, "sink": {"topic": "cases-v2"}, "schedule": {"regions": ["ДНР"]}},
    )
    monkeypatch.setenv("COURT_MAX_PAGES", "2")

    assert Config.get_max_pages() == 7
    assert Config.get_topic() == "cases-v2"
    assert Config.get_regions() == ["ДНР"]


def test_load_toml_merges_private_file(tmp_path, monkeypatch):
    (tmp_path / "config.toml").write_text(
        '[crawl]\nmax_pages = 2\ncase_delay_seconds = 1.5\n', encoding="utf-8"
    )
    (tmp_path / "config.private.toml").write_text('[crawl]\nmax_pages = 5\n', encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    cfg = config_module._load_toml_config()

    assert cfg["crawl"] == {"max_pages": 5, "case_delay_seconds": 1.5}


def test_setup_logging_writes_numbered_file(tmp_path, restore_logger):
    log_file = tmp_path / "logs" / "harvester.log"

    setup_logging("DEBUG", str(log_file))
    logger.info("[UI_ACTION] Clicked search button using native click")
    logger.remove()

    written = (tmp_path / "logs" / "harvester-1.log").read_text(encoding="utf-8")
    assert "Logging initialized with level: DEBUG" in written
    assert "[UI_ACTION] Clicked search button" in written


def test_rotate_numbered_logs_shifts_old_files(tmp_path):
    (tmp_path / "run-1.log").write_text("newest", encoding="utf-8")
    (tmp_path / "run-2.log").write_text("older", encoding="utf-8")

    new_log = rotate_numbered_logs(tmp_path, "run", ".log", max_index=3)

    assert new_log == tmp_path / "run-1.log"
    assert not new_log.exists()
    assert (tmp_path / "run-2.log").read_text(encoding="utf-8") == "newest"
    assert (tmp_path / "run-3.log").read_text(encoding="utf-8") == "older"
