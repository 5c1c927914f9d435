"""Pytest configuration for phoning tracker tests.

Ensures the project root is in sys.path so imports work correctly.
"""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from phoning_tracker.remote import RemoteMirror, RemoteRowStore  # noqa: E402
from phoning_tracker.snapshot import SnapshotStore  # noqa: E402
from phoning_tracker.tracker import Tracker  # noqa: E402
from tests.fakes.executor import InlineExecutor  # noqa: E402
from tests.fakes.supabase import FakeSupabaseClient  # noqa: E402


@pytest.fixture
def snapshot(tmp_path):
    return SnapshotStore(str(tmp_path / "phoning.db"))


@pytest.fixture
def fake_client():
    return FakeSupabaseClient()


@pytest.fixture
def remote(fake_client):
    return RemoteRowStore(fake_client, "restaurants")


@pytest.fixture
def tracker(snapshot):
    return Tracker(snapshot)


@pytest.fixture
def synced_tracker(snapshot, remote):
    return Tracker(snapshot, remote=remote, mirror=RemoteMirror(remote, executor=InlineExecutor()))
