"""
Logging configuration for msgjournal.

Console output goes to stderr so that journal data printed by the CLI on
stdout stays parseable.
"""
import logging
import sys
from pathlib import Path

import colorama

from msgjournal.utility.settings import settings

# Initialize colorama for cross-platform color support
colorama.init()


class ColorFormatter(logging.Formatter):
    """Custom formatter with colors"""

    COLORS = {
        "INFO": colorama.Fore.GREEN,
        "WARNING": colorama.Fore.YELLOW,
        "ERROR": colorama.Fore.RED,
        "DEBUG": colorama.Fore.BLUE,
    }

    def format(self, record):
        text = super().format(record)
        color = self.COLORS.get(record.levelname)
        if color:
            return f"{color}{text}{colorama.Style.RESET_ALL}"
        return text


class JournalLogger:
    """Central logging class for msgjournal"""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

        # Only set up handlers if they haven't been set up already
        if not self.logger.handlers:
            self.logger.setLevel(logging.DEBUG)

            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(
                getattr(logging, settings.logging.level.upper(), logging.INFO)
            )
            console_handler.setFormatter(
                ColorFormatter("%(asctime)s  %(message)s", datefmt="%H:%M:%S")
            )
            self.logger.addHandler(console_handler)

            if settings.logging.log_dir:
                log_dir = Path(settings.logging.log_dir)
                log_dir.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(
                    log_dir / "msgjournal.log", encoding="utf-8"
                )
                file_handler.setLevel(logging.DEBUG)
                file_handler.setFormatter(
                    logging.Formatter(
                        "%(asctime)s  %(levelname)s  %(name)s  %(message)s",
                        datefmt="%Y-%m-%d %H:%M:%S",
                    )
                )
                self.logger.addHandler(file_handler)

            # Prevent logs from being passed to root logger
            self.logger.propagate = False

    def error(self, msg: str) -> None:
        self.logger.error(msg)

    def debug(self, msg: str) -> None:
        self.logger.debug(msg)


def get_logger(name: str) -> JournalLogger:
    """Get a configured logger instance."""
    return JournalLogger(name)
