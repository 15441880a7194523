from pathlib import Path

import pytest

from benchbot.config.settings import Settings

from .helpers import FakeRunner, RecordingSleep


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        git_root=str(tmp_path / "git"),
        database_path=str(tmp_path / "jobs.db"),
        publish_retry_delay=3.0,
        command_timeout=60,
    )
