"""Rich console output and logging setup."""

from dermopt.console.logger import AppConsole, configure_logging

__all__ = ["AppConsole", "configure_logging"]
