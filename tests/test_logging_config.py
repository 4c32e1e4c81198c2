"""Tests for logging setup, identifier redaction and the structured formatter."""

from __future__ import annotations

import logging
import logging.config
import os
from unittest.mock import MagicMock

from bwaincell.display.logging_config import (
    IdentifierRedactionFilter,
    StructuredFormatter,
    build_log_config,
    setup_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("bwaincell.test", logging.WARNING, __file__, 1, "Validation error", (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestIdentifierRedactionFilter:
    def test_redacts_identifiers(self) -> None:
        record = _record(user_id="123", guild_id="456", field="item")
        assert IdentifierRedactionFilter().filter(record) is True
        assert record.user_id == "***REDACTED***"
        assert record.guild_id == "***REDACTED***"
        assert record.field == "item"

    def test_leaves_missing_identifiers_alone(self) -> None:
        record = _record(guild_id=None)
        IdentifierRedactionFilter().filter(record)
        assert record.guild_id is None
        assert not hasattr(record, "user_id")


class TestStructuredFormatter:
    def test_appends_extras(self) -> None:
        line = StructuredFormatter("%(message)s").format(
            _record(user_id="1", field="item", reason="sql_ddl", duration_ms=12.345)
        )
        assert line == "Validation error [user_id=1 field=item reason=sql_ddl duration_ms=12.3]"

    def test_plain_record(self) -> None:
        assert StructuredFormatter("%(message)s").format(_record()) == "Validation error"


class TestBuildLogConfig:
    def test_levels_and_file(self) -> None:
        cfg = build_log_config("DEBUG", "logs/x.log")
        assert cfg["handlers"]["file_handler"]["filename"] == "logs/x.log"
        assert cfg["loggers"]["bwaincell"]["level"] == "DEBUG"
        assert cfg["loggers"]["bwaincell.interactions"]["level"] == "DEBUG"
        assert cfg["root"]["level"] == "DEBUG"

    def test_root_stays_at_warning(self) -> None:
        assert build_log_config("INFO", "x.log")["root"]["level"] == "WARNING"

    def test_redaction_only_when_ids_hidden(self) -> None:
        assert build_log_config("INFO", "x.log")["handlers"]["file_handler"]["filters"] == []
        hidden = build_log_config("INFO", "x.log", log_user_ids=False)
        assert hidden["handlers"]["file_handler"]["filters"] == ["redact_identifiers"]

    def test_base_config_not_mutated(self) -> None:
        build_log_config("ERROR", "x.log", log_user_ids=False)
        assert build_log_config("INFO", "y.log")["handlers"]["file_handler"]["filters"] == []


class TestSetupLogging:
    def test_applies_config(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        dict_config = MagicMock()
        monkeypatch.setattr(logging.config, "dictConfig", dict_config)

        log_fpath, level = setup_logging("warn", log_user_ids=False, quiet=True)

        assert level == "WARNING"
        assert log_fpath.startswith("logs")
        assert os.path.isdir(tmp_path / "logs")
        applied = dict_config.call_args.args[0]
        assert applied["handlers"]["file_handler"]["filename"] == log_fpath
        assert applied["handlers"]["file_handler"]["filters"] == ["redact_identifiers"]

    def test_invalid_level_falls_back(self, tmp_path, monkeypatch, capsys) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(logging.config, "dictConfig", MagicMock())
        _, level = setup_logging("loud")
        assert level == "INFO"
        assert "invalid log level" in capsys.readouterr().out
