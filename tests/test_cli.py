import pytest

from phoning_tracker import cli
from phoning_tracker.snapshot import SnapshotStore


@pytest.fixture(autouse=True)
def local_only(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "cli.db")


@pytest.fixture
def import_file(tmp_path):
    path = tmp_path / "restos.tsv"
    path.write_text(
        "Restaurant\tArr\tStatut\tCV envoyé\n"
        "Mugaritz\t75002\tÀ contacter\t1\n"
        "\t75003\t\t\n",
        encoding="utf-8",
    )
    return str(path)


def test_import_is_a_dry_run_by_default(db_path, import_file, capsys):
    assert cli.main(["--db", db_path, "import", import_file]) == 0
    out = capsys.readouterr().out
    assert "mugaritz-0" in out
    assert "create" in out
    assert "Parsed=1 rejected=1" in out
    assert SnapshotStore(db_path).load().get("mugaritz-0") is None


def test_import_apply_writes_snapshot(db_path, import_file, capsys):
    assert cli.main(["--db", db_path, "import", import_file, "--apply"]) == 0
    row = SnapshotStore(db_path).load().get("mugaritz-0")
    assert row.cv_sent is True
    assert "Imported=1 total=4" in capsys.readouterr().out


def test_import_missing_file(db_path, tmp_path):
    assert cli.main(["--db", db_path, "import", str(tmp_path / "missing.csv")]) == 2


def test_set_and_stats(db_path, capsys):
    assert cli.main(["--db", db_path, "set", "kei", "status=Pas de réponse", "lm_sent=1"]) == 2
    assert cli.main(["--db", db_path, "set", "kei", "status=Pas de réponse", "cover_letter_sent=oui"]) == 0
    assert cli.main(["--db", db_path, "set", "nope", "comment=x"]) == 2
    assert cli.main(["--db", db_path, "set", "kei", "comment"]) == 2
    capsys.readouterr()

    assert cli.main(["--db", db_path, "stats"]) == 0
    out = capsys.readouterr().out
    assert "Pas de réponse" in out
    assert SnapshotStore(db_path).load().get("kei").cover_letter_sent is True


def test_export_to_file(db_path, tmp_path):
    out = tmp_path / "out.csv"
    assert cli.main(["--db", db_path, "export", "-o", str(out)]) == 0
    text = out.read_text(encoding="utf-8")
    assert text.startswith("Restaurant,Adresse,Téléphone")
    assert '"Kei"' in text


def test_reset_asks_for_confirmation(db_path, monkeypatch):
    cli.main(["--db", db_path, "set", "kei", "comment=x"])
    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    assert cli.main(["--db", db_path, "reset"]) == 1
    assert SnapshotStore(db_path).load().get("kei").comment == "x"

    assert cli.main(["--db", db_path, "reset", "--yes"]) == 0
    assert SnapshotStore(db_path).load().get("kei").comment == ""
