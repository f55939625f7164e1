"""
Default settings for msgjournal.
"""
import os
from typing import Optional

from pydantic import BaseModel, Field


class JournalSettings(BaseModel):
    """Journal storage and query defaults."""
    table: str = Field(default="journal", description="Journal table name")
    timeout: float = Field(
        default=5.0,
        description="Seconds to wait on a locked database before failing",
        gt=0
    )
    truncate_length: int = Field(
        default=15,
        description="Default worker message truncation used by the CLI",
        ge=0
    )


class LoggingSettings(BaseModel):
    """Logging output settings."""
    level: str = Field(default="INFO", description="Console log level")
    log_dir: Optional[str] = Field(
        default_factory=lambda: os.environ.get("MSGJOURNAL_LOG_DIR"),
        description="Directory for msgjournal.log (no file logging when unset)"
    )


class Settings(BaseModel):
    """Global settings for msgjournal."""
    journal: JournalSettings = JournalSettings()
    logging: LoggingSettings = LoggingSettings()


settings = Settings()
