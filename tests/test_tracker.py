import threading
import time

import pytest

from phoning_tracker import reconcile
from phoning_tracker.identity import Identity
from phoning_tracker.models import SEED_ROWS
from phoning_tracker.reconcile import InvalidPatch
from phoning_tracker.remote import RemoteMirror
from phoning_tracker.tracker import Tracker
from phoning_tracker.views import Filters
from tests.fakes.supabase import FakeSupabaseClient


def test_edits_are_persisted_to_the_snapshot(tracker, snapshot):
    tracker.update_row("kei", {"status": "Pas de réponse", "comment": "répondeur"})
    reloaded = Tracker(snapshot)
    assert reloaded.store.get("kei").comment == "répondeur"


def test_import_counts_and_merges(tracker):
    result = tracker.import_text("Restaurant,Arr\nMugaritz,75002\n,75003\n")
    assert len(result.rows) == 1
    assert result.rejected == 1
    assert [r.id for r in tracker.store.rows][-1] == "mugaritz-0"


def test_empty_import_leaves_state_alone(tracker):
    before = tracker.store
    result = tracker.import_text("Restaurant\n")
    assert result.rows == []
    assert tracker.store is before


def test_reset_needs_confirmation(tracker):
    tracker.update_row("kei", {"comment": "x"})
    assert tracker.reset() is False
    assert tracker.store.get("kei").comment == "x"
    assert tracker.reset(confirm=True) is True
    assert tracker.store.get("kei") == SEED_ROWS[0]


def test_add_status_requires_label(tracker):
    with pytest.raises(InvalidPatch):
        tracker.add_status("  ")
    tracker.add_status("Relancé")
    assert tracker.store.statuses[-1] == "Relancé"


def test_view_and_stats(tracker):
    tracker.update_row("kei", {"status": "À contacter"})
    tracker.update_row("ambroisie", {"status": "Inconnu"})
    assert tracker.stats()["by_status"]["À contacter"] == 1
    assert "Inconnu" not in tracker.stats()["by_status"]
    view = tracker.view(Filters(arr="75004"))
    assert [r["id"] for r in view["rows"]] == ["ambroisie"]


def test_local_edit_is_mirrored(synced_tracker, fake_client):
    synced_tracker.update_row("kei", {"cv_sent": True})
    assert [u["id"] for u in fake_client.upserts] == ["kei"]
    assert fake_client.tables["restaurants"][0]["cv_envoye"] is True


def test_import_mirrors_only_changed_rows(synced_tracker, fake_client):
    synced_tracker.import_text("Restaurant\nA\nB\n")
    synced_tracker.import_text("Restaurant\nA\nB\n")
    assert [u["id"] for u in fake_client.upserts] == ["a-0", "b-1"]


def test_failed_remote_write_keeps_local_edit(synced_tracker, fake_client, caplog):
    fake_client.fail_with = RuntimeError("timeout")
    row = synced_tracker.update_row("kei", {"comment": "noted"})
    assert row.comment == "noted"
    assert synced_tracker.store.get("kei").comment == "noted"
    assert "Remote upsert failed" in caplog.text


def test_load_remote_merges_remote_rows(synced_tracker, fake_client):
    fake_client.tables["restaurants"] = [
        {"id": "kei", "restaurant": "Kei", "statut": "Rendez-vous pris", "created_at": "1"},
        {"id": "new-place", "restaurant": "New place", "created_at": "2"},
    ]
    assert synced_tracker.load_remote() == 2
    assert synced_tracker.store.get("kei").status == "Rendez-vous pris"
    assert synced_tracker.store.rows[-1].id == "new-place"
    assert fake_client.upserts == []


def test_load_remote_failure_is_logged(synced_tracker, fake_client, caplog):
    fake_client.fail_with = RuntimeError("503")
    before = synced_tracker.store
    assert synced_tracker.load_remote() == 0
    assert synced_tracker.store is before
    assert "Remote load failed" in caplog.text


def test_start_and_close_manage_auth_subscription(snapshot):
    client = FakeSupabaseClient()
    client.auth.sign_in_as("u1", "chef@example.com")
    tracker = Tracker(snapshot, identity=Identity(client))
    tracker.start()
    assert tracker.user == {"id": "u1", "email": "chef@example.com"}
    assert len(client.auth.subscriptions) == 1

    client.auth.sign_out()
    assert tracker.user is None

    tracker.close()
    assert client.auth.subscriptions == []
    client.auth.sign_in_as("u2", "other@example.com")
    assert tracker.user is None


def test_identity_magic_link_and_lookup_failure():
    client = FakeSupabaseClient()
    identity = Identity(client, redirect_url="https://tracker.example.com")
    identity.send_magic_link(" chef@example.com ")
    assert client.auth.otp_requests == [{
        "email": "chef@example.com",
        "options": {"email_redirect_to": "https://tracker.example.com"},
    }]
    with pytest.raises(ValueError):
        identity.send_magic_link("not-an-email")

    client.auth.fail_get_user = True
    assert identity.current_user() is None


def test_default_mirror_is_created_for_remote(snapshot, remote, fake_client):
    tracker = Tracker(snapshot, remote=remote)
    assert isinstance(tracker.mirror, RemoteMirror)
    tracker.update_row("kei", {"comment": "x"})
    tracker.mirror.flush(timeout=5)
    tracker.close()
    assert fake_client.tables["restaurants"][0]["commentaire"] == "x"


def test_concurrent_edits_are_applied_one_at_a_time(tracker, snapshot, monkeypatch):
    original_reduce = reconcile.reduce

    def slow_reduce(store, action):
        time.sleep(0.05)
        return original_reduce(store, action)

    monkeypatch.setattr(reconcile, "reduce", slow_reduce)
    threads = [
        threading.Thread(target=tracker.update_row, args=("kei", {"comment": "a"})),
        threading.Thread(target=tracker.update_row, args=("ambroisie", {"comment": "b"})),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert tracker.store.get("kei").comment == "a"
    assert tracker.store.get("ambroisie").comment == "b"
    reloaded = snapshot.load()
    assert reloaded.get("kei").comment == "a"
    assert reloaded.get("ambroisie").comment == "b"
