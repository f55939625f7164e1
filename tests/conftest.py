"""
Common test fixtures and configuration.

Shared fixtures for journal tests:
- Temporary database locations
- Sample entries with fixed timestamps
- Opened journals that are closed after each test
"""
import shutil
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from click.testing import CliRunner

# Add src directory to Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from msgjournal.core.entry import JournalEntry  # noqa: E402
from msgjournal.core.journal import Journal  # noqa: E402

T0 = datetime(2000, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
T1 = datetime(2000, 1, 1, 0, 5, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture
def cli_runner():
    """Click test runner for CLI commands."""
    return CliRunner()


@pytest.fixture
def db_path(temp_dir):
    """Path to a journal database that does not exist yet."""
    return temp_dir / "journal" / "journal.db"


@pytest.fixture
def placeholder_entry():
    """A legacy plain-text entry sent at T0."""
    return JournalEntry(
        message_id="test-id",
        sent=T0,
        worker_name="test-worker",
        response_to="test-response",
        worker_event=0,
        payload="test-event-message",
    )


@pytest_asyncio.fixture
async def journal(db_path):
    """Open a journal on a fresh database file."""
    journal = await Journal.open(db_path, name="test_journal")
    yield journal
    await journal.close()


@pytest_asyncio.fixture
async def memory_journal():
    """Open a journal on a private in-memory database."""
    journal = await Journal.open(":memory:", name="test_memory_journal")
    yield journal
    await journal.close()
