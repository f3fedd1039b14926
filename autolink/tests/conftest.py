"""Shared fixtures for autolink tests."""

import tempfile
from pathlib import Path

import frontmatter
import pytest

from autolink.daemon.config import Settings
from autolink.daemon.models import MS_PER_DAY


NOW = 1_750_000_000_000  # fixed "now" in epoch ms


class FakeClock:
    """Manually advanced clock returning epoch milliseconds."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance_days(self, days: float) -> None:
        self.now += int(days * MS_PER_DAY)


class FakeAliases:
    """Alias source backed by a dict of raw front-matter values."""

    def __init__(self, aliases=None):
        self.raw = dict(aliases or {})
        self.calls = 0

    def aliases(self, identity):
        self.calls += 1
        return self.raw.get(identity)


def write_note(vault: Path, identity: str, aliases=None, content: str = "") -> Path:
    """Write a markdown note, with aliases in front matter when given."""
    path = vault / identity
    path.parent.mkdir(parents=True, exist_ok=True)
    post = frontmatter.Post(content)
    if aliases is not None:
        post["aliases"] = aliases
    path.write_text(frontmatter.dumps(post))
    return path


@pytest.fixture
def temp_vault():
    """Create a temporary vault for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        vault_path = Path(tmpdir) / "test_vault"
        vault_path.mkdir()
        yield vault_path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings()
