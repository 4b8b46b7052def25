"""Tests for centralized logging configuration."""

import logging
import sys
from collections.abc import Generator
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, cast

import pytest
from pydantic import ValidationError

from bankdash.config import LoggingConfig as LoggingSettings
from bankdash.logging.config import (
    COMPONENT_LOGGERS,
    LoggingConfig,
    parse_component_levels,
    setup_logging,
)


def _force_config(**kwargs: Any) -> LoggingConfig:
    """Return a LoggingConfig that forces handler replacement."""
    return LoggingConfig(force_reconfigure=True, **kwargs)


class TestSetupLogging:
    """Tests for setup_logging handler configuration."""

    @pytest.fixture(autouse=True)
    def _reset_root_logger(self) -> Generator[None, Any, None]:
        """Remove handlers added during each test to avoid leaking state."""
        root = logging.getLogger()
        original_handlers = list(root.handlers)
        original_level = root.level
        component_levels = {
            name: logging.getLogger(name).level for name in COMPONENT_LOGGERS.values()
        }
        yield
        for handler in root.handlers:
            if handler not in original_handlers:
                handler.close()
        root.handlers = original_handlers
        root.setLevel(original_level)
        for name, level in component_levels.items():
            logging.getLogger(name).setLevel(level)

    @pytest.mark.unit
    @pytest.mark.parametrize("cli_mode", [False, True])
    def test_console_handler_uses_stderr(self, cli_mode: bool) -> None:
        """Command output goes to stdout, so logs must stay on stderr."""
        setup_logging(config=_force_config(), cli_mode=cli_mode)
        root = logging.getLogger()

        stream_handlers = [
            h
            for h in root.handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]
        assert stream_handlers, "Expected at least one StreamHandler"
        for h in stream_handlers:
            stream: object = getattr(cast(Any, h), "stream", None)
            assert stream is sys.stderr

    @pytest.mark.unit
    def test_verbose_enables_debug(self) -> None:
        setup_logging(config=_force_config(level="WARNING"), verbose=True)
        assert logging.getLogger().level == logging.DEBUG

    @pytest.mark.unit
    def test_configured_level(self) -> None:
        setup_logging(config=_force_config(level="WARNING"))
        assert logging.getLogger().level == logging.WARNING

    @pytest.mark.unit
    def test_file_logging(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "bankdash.log"

        setup_logging(config=_force_config(log_to_file=True, log_file_path=log_file))

        file_handlers = [
            h
            for h in logging.getLogger().handlers
            if isinstance(h, RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert log_file.parent.is_dir()

    @pytest.mark.unit
    def test_verbose_opens_every_subsystem(self) -> None:
        setup_logging(config=_force_config(level="WARNING"), verbose=True)

        for name in COMPONENT_LOGGERS.values():
            assert logging.getLogger(name).level == logging.DEBUG

    @pytest.mark.unit
    def test_cli_mode_quiets_cache_logger(self) -> None:
        setup_logging(config=_force_config(), cli_mode=True)

        assert logging.getLogger("bankdash.cache").level == logging.WARNING
        assert logging.getLogger("bankdash.sync").level == logging.NOTSET
        assert not logging.getLogger("bankdash.cache.metadata_cache").isEnabledFor(
            logging.INFO
        )

    @pytest.mark.unit
    def test_component_levels_override_defaults(self) -> None:
        setup_logging(
            config=_force_config(component_levels={"cache": "DEBUG", "sync": "ERROR"}),
            cli_mode=True,
            verbose=True,
        )

        assert logging.getLogger("bankdash.cache").level == logging.DEBUG
        assert logging.getLogger("bankdash.sync").level == logging.ERROR
        assert logging.getLogger("bankdash.api").level == logging.DEBUG


class TestLoggingConfig:
    @pytest.mark.unit
    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BANKDASH_LOG_LEVEL", "debug")
        monkeypatch.setenv("BANKDASH_LOG_TO_FILE", "true")

        config = LoggingConfig.from_environment()

        assert config.level == "DEBUG"
        assert config.log_to_file is True

    @pytest.mark.unit
    def test_settings_convert_to_runtime_config(self) -> None:
        settings = LoggingSettings(level="ERROR", backup_count=2)

        runtime = settings.to_runtime_config(force_reconfigure=True)

        assert runtime.level == "ERROR"
        assert runtime.backup_count == 2
        assert runtime.force_reconfigure is True

    @pytest.mark.unit
    def test_component_levels_from_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("BANKDASH_LOG_COMPONENTS", "sync=debug, cache=WARNING")

        config = LoggingConfig.from_environment()

        assert config.component_levels == {"sync": "DEBUG", "cache": "WARNING"}

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["ledger=DEBUG", "sync=LOUD"])
    def test_invalid_component_levels(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_component_levels(value)

    @pytest.mark.unit
    def test_settings_reject_unknown_component(self) -> None:
        with pytest.raises(ValidationError):
            LoggingSettings(component_levels={"ledger": "DEBUG"})

    @pytest.mark.unit
    def test_settings_pass_component_levels(self) -> None:
        settings = LoggingSettings(component_levels={"sync": "DEBUG"})
        assert settings.to_runtime_config().component_levels == {"sync": "DEBUG"}
