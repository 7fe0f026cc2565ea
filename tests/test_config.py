"""Tests for settings helpers and logger setup."""

import logging

import pytest

from config import settings
from utils.logger import PACKAGES, setup_logging


class TestSettings:

    def test_get_env_returns_value(self, monkeypatch):
        monkeypatch.setenv("SKILL_MATCHER_TEST_KEY", "value")
        assert settings.get_env("SKILL_MATCHER_TEST_KEY") == "value"

    def test_get_env_raises_when_unset(self, monkeypatch):
        monkeypatch.delenv("SKILL_MATCHER_TEST_KEY", raising=False)
        with pytest.raises(ValueError, match="SKILL_MATCHER_TEST_KEY not set"):
            settings.get_env("SKILL_MATCHER_TEST_KEY")

    def test_get_optional_env_default(self, monkeypatch):
        monkeypatch.setenv("SKILL_MATCHER_TEST_KEY", "")
        assert settings.get_optional_env("SKILL_MATCHER_TEST_KEY", "fallback") == "fallback"

    def test_llm_fallback_needs_every_azure_setting(self, monkeypatch):
        for name in ("AZURE_OPENAI_API_KEY", "AZURE_OPENAI_ENDPOINT",
                     "AZURE_OPENAI_DEPLOYMENT", "AZURE_OPENAI_API_VERSION"):
            monkeypatch.setattr(settings, name, "x")
        assert settings.llm_fallback_enabled()

        monkeypatch.setattr(settings, "AZURE_OPENAI_ENDPOINT", None)
        assert not settings.llm_fallback_enabled()


class TestLogger:

    @pytest.fixture(autouse=True)
    def reset_package_loggers(self):
        yield
        for name in PACKAGES:
            logger = logging.getLogger(name)
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()
            logger.setLevel(logging.NOTSET)

    def test_module_loggers_reach_the_log_file(self, tmp_path):
        log_file = tmp_path / "app.log"
        setup_logging("DEBUG", str(log_file), packages=("resolver",))

        logger = logging.getLogger("resolver")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2

        logging.getLogger("resolver.candidate_resolver").debug("created candidate")
        for handler in logger.handlers:
            handler.flush()
        assert "resolver.candidate_resolver - DEBUG - created candidate" in log_file.read_text()

    def test_packages_share_one_file_handler(self, tmp_path):
        setup_logging("INFO", str(tmp_path / "app.log"))

        file_handlers = {
            id(h) for name in PACKAGES for h in logging.getLogger(name).handlers
            if isinstance(h, logging.FileHandler)
        }
        assert len(file_handlers) == 1

    def test_setup_is_idempotent(self):
        setup_logging("INFO")
        setup_logging("WARNING")

        logger = logging.getLogger("matcher")
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        setup_logging("chatty", packages=("api",))
        assert logging.getLogger("api").level == logging.INFO
