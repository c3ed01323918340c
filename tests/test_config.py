import logging

import pytest

from time_reports import config
from time_reports.logging_config import ReportTZFormatter, setup_logging


def test_validate_config_reports_missing_variables(monkeypatch):
    monkeypatch.setattr(config, "CLICKUP_API_TOKEN", None)
    monkeypatch.setattr(config, "CLICKUP_TEAM_ID", "")

    with pytest.raises(RuntimeError, match="CLICKUP_API_TOKEN, CLICKUP_TEAM_ID"):
        config.validate_config()


def test_validate_config_passes(monkeypatch):
    monkeypatch.setattr(config, "CLICKUP_API_TOKEN", "pk_1")
    monkeypatch.setattr(config, "CLICKUP_TEAM_ID", "team-1")
    config.validate_config()


def test_log_timestamps_use_report_timezone():
    formatter = ReportTZFormatter("%(asctime)s %(message)s", tz_name="Asia/Karachi")
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "hi", None, None)
    record.created = 0  # 1970-01-01 00:00 UTC

    assert formatter.format(record) == "05:00:00 hi"


def test_setup_logging_sets_level():
    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING
    setup_logging("INFO")
