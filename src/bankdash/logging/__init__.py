"""Centralized logging configuration for BankDash.

Standard usage:
    ```python
    import logging
    from bankdash.logging import setup_logging

    # Configure once at application startup
    setup_logging()

    # Get loggers in each module
    logger = logging.getLogger(__name__)
    ```
"""

from .config import LoggingConfig, setup_logging

__all__ = ["LoggingConfig", "setup_logging"]
