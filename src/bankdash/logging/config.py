"""Logging configuration management for BankDash.

Console output always goes to stderr so that command output written to stdout
(connection listings, summaries) stays machine-readable.
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Loggers of the BankDash subsystems, addressable by their short name
COMPONENT_LOGGERS = {
    "api": "bankdash.api",
    "cache": "bankdash.cache",
    "reconciliation": "bankdash.reconciliation",
    "sync": "bankdash.sync",
}

# Applied in CLI mode unless verbose
CLI_COMPONENT_LEVELS = {"cache": "WARNING"}


@dataclass
class LoggingConfig:
    """Configuration settings for application logging."""

    level: str = "INFO"
    format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    cli_format_string: str = "%(message)s"
    log_to_file: bool = False
    log_file_path: Path = Path("logs/bankdash.log")
    max_file_size_mb: int = 10
    backup_count: int = 5
    force_reconfigure: bool = False
    component_levels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_environment(cls) -> "LoggingConfig":
        """Create logging configuration from environment variables.

        Returns:
            LoggingConfig: Configuration loaded from environment
        """
        return cls(
            level=os.getenv("BANKDASH_LOG_LEVEL", "INFO").upper(),
            log_to_file=os.getenv("BANKDASH_LOG_TO_FILE", "false").lower() == "true",
            log_file_path=Path(
                os.getenv("BANKDASH_LOG_FILE_PATH", "logs/bankdash.log")
            ),
            max_file_size_mb=int(os.getenv("BANKDASH_LOG_MAX_FILE_SIZE_MB", "10")),
            backup_count=int(os.getenv("BANKDASH_LOG_BACKUP_COUNT", "5")),
            component_levels=parse_component_levels(
                os.getenv("BANKDASH_LOG_COMPONENTS", "")
            ),
        )


def setup_logging(
    config: LoggingConfig | None = None,
    cli_mode: bool = False,
    verbose: bool = False,
) -> None:
    """Set up centralized logging configuration for the application.

    Args:
        config: Optional logging configuration. If None, loads from environment.
        cli_mode: If True, use simplified CLI-friendly formatting
        verbose: If True, enable DEBUG level logging (overrides config level)
    """
    if config is None:
        config = LoggingConfig.from_environment()

    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, config.level, logging.INFO)

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stderr)
    if cli_mode:
        console_handler.setFormatter(logging.Formatter(config.cli_format_string))
    else:
        console_handler.setFormatter(logging.Formatter(config.format_string))
    handlers.append(console_handler)

    if config.log_to_file:
        config.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        file_handler.setFormatter(logging.Formatter(config.format_string))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=config.force_reconfigure,
    )

    # Third-party HTTP stack is noisy at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    _configure_component_loggers(config, cli_mode=cli_mode, verbose=verbose)


def parse_component_levels(value: str) -> dict[str, str]:
    """Parse ``sync=DEBUG,cache=WARNING`` into a component level mapping.

    Raises:
        ValueError: If a component or level is unknown
    """
    levels: dict[str, str] = {}
    for item in filter(None, (part.strip() for part in value.split(","))):
        component, _, level = item.partition("=")
        component = component.strip().lower()
        level = level.strip().upper()
        if component not in COMPONENT_LOGGERS:
            raise ValueError(f"Unknown logging component: {component}")
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown logging level for {component}: {level}")
        levels[component] = level
    return levels


def _configure_component_loggers(
    config: LoggingConfig, cli_mode: bool, verbose: bool
) -> None:
    """Apply per-subsystem levels.

    ``verbose`` opens every subsystem at DEBUG; explicit component levels win
    over both the verbose flag and the CLI defaults.
    """
    levels: dict[str, str] = {}
    if cli_mode and not verbose:
        levels.update(CLI_COMPONENT_LEVELS)
    if verbose:
        levels.update({component: "DEBUG" for component in COMPONENT_LOGGERS})
    levels.update(config.component_levels)

    for component, logger_name in COMPONENT_LOGGERS.items():
        logger = logging.getLogger(logger_name)
        logger.setLevel(levels.get(component, logging.NOTSET))
