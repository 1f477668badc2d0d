"""Tests for settings and logging setup."""

import logging
import tempfile

import pytest

from docfill.config import Settings, get_settings
from docfill.errors import ConfigError, DocFillError
from docfill.logging_config import setup_logging


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("DOCFILL_SOFFICE", "DOCFILL_CONVERT_TIMEOUT", "DOCFILL_TMP_DIR",
                 "DOCFILL_LOG_LEVEL", "DOCFILL_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = get_settings()
    assert settings.soffice is None
    assert settings.convert_timeout == 120
    assert settings.tmp_dir == tempfile.gettempdir()
    assert settings.log_level == "INFO"


def test_environment_overrides(clean_env, tmp_path):
    clean_env.setenv("DOCFILL_SOFFICE", "/usr/local/bin/soffice")
    clean_env.setenv("DOCFILL_CONVERT_TIMEOUT", "30")
    clean_env.setenv("DOCFILL_TMP_DIR", str(tmp_path))
    settings = get_settings()
    assert settings.soffice == "/usr/local/bin/soffice"
    assert settings.convert_timeout == 30
    assert settings.tmp_dir == str(tmp_path)


@pytest.mark.parametrize("timeout", ["-1", "abc"])
def test_invalid_timeout(clean_env, timeout):
    clean_env.setenv("DOCFILL_CONVERT_TIMEOUT", timeout)
    with pytest.raises(ConfigError, match="convert_timeout") as exc:
        get_settings()
    assert isinstance(exc.value, DocFillError)


def test_log_file(tmp_path):
    log_file = tmp_path / "logs" / "app.log"
    logger = setup_logging(Settings(log_file=str(log_file), log_level="debug"))
    assert logger.level == logging.DEBUG
    logging.getLogger("docfill.converter").warning("converter missing")
    for handler in logger.handlers:
        handler.flush()
    content = log_file.read_text(encoding="utf-8")
    assert "WARNING" in content and "docfill.converter" in content
    assert "converter missing" in content


def test_unknown_level_falls_back_to_info():
    logger = setup_logging(Settings(log_level="chatty"))
    assert logger.level == logging.INFO
