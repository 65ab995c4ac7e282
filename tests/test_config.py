"""Tests for configuration models and logging setup."""

import logging
from pathlib import Path

import pytest
from llm_content.logging_config import configure_logging, setup_logging
from llm_content.models.config import LlmContentConfig
from pydantic import ValidationError
from rich.logging import RichHandler


class TestLlmContentConfig:
    """Tests for LlmContentConfig."""

    def test_defaults(self):
        config = LlmContentConfig()

        assert config.enabled_content_types == []
        assert config.view_mode == "full"
        assert config.auto_generate is True
        assert config.conversion.timezone == "UTC"
        assert config.conversion.accordion_title_class == "field--name-field-accordion-title"
        assert config.export.max_items == 500

    def test_from_yaml(self):
        config = LlmContentConfig.from_yaml(
            """
enabled_content_types: [article, page]
site:
  name: Example
  slogan: Things we wrote
storage:
  database: ./data/content.db
conversion:
  timezone: Europe/Berlin
"""
        )

        assert config.is_enabled_type("page")
        assert not config.is_enabled_type("event")
        assert config.site.name == "Example"
        assert config.storage.database == Path("./data/content.db")
        assert config.conversion.timezone == "Europe/Berlin"

    def test_empty_yaml(self):
        assert LlmContentConfig.from_yaml("") == LlmContentConfig()

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValidationError):
            LlmContentConfig.from_yaml("enabled_types: [article]\n")

    def test_nested_unknown_keys_rejected(self):
        with pytest.raises(ValidationError):
            LlmContentConfig.from_yaml("site:\n  title: Example\n")

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            LlmContentConfig(log_level="LOUD")

    def test_to_yaml_loads_back(self, tmp_path):
        config = LlmContentConfig(enabled_content_types=["article"], view_mode="llm")
        path = tmp_path / "config.yaml"
        path.write_text(config.to_yaml(), encoding="utf-8")

        assert LlmContentConfig.from_yaml_file(path) == config


class TestSetupLogging:
    def test_configures_package_logger(self, tmp_path):
        log_file = tmp_path / "llm_content.log"

        logger = setup_logging(level="DEBUG", log_file=str(log_file))
        logging.getLogger("llm_content.core.service").debug("hello log")

        assert logger.name == "llm_content"
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        for handler in logger.handlers:
            handler.flush()
        assert "hello log" in log_file.read_text()

    def test_does_not_duplicate_handlers(self):
        setup_logging()
        logger = setup_logging()

        assert len(logger.handlers) == 1

    def test_plain_handler_off_terminal(self):
        logger = setup_logging(interactive=False)

        (handler,) = logger.handlers
        assert not isinstance(handler, RichHandler)
        assert handler.formatter._fmt == "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def test_rich_handler_on_terminal(self):
        logger = setup_logging(interactive=True)

        (handler,) = logger.handlers
        assert isinstance(handler, RichHandler)
        assert handler.console.stderr is True

    def test_force_replaces_handlers(self):
        setup_logging(interactive=False)
        logger = setup_logging(interactive=True, force=True)

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

    def test_configure_from_config(self, tmp_path):
        config = LlmContentConfig(log_level="WARNING", log_file=tmp_path / "run.log")

        logger = configure_logging(config)
        logging.getLogger("llm_content.storage").warning("store is slow")
        logging.getLogger("llm_content.storage").info("not written")

        assert logger.level == logging.WARNING
        for handler in logger.handlers:
            handler.flush()
        content = (tmp_path / "run.log").read_text(encoding="utf-8")
        assert "store is slow" in content
        assert "not written" not in content
