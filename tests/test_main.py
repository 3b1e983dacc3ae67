from __future__ import annotations

from pathlib import Path

import pytest

from careercrm import main, scanner
from careercrm.config import Config, load_config, save_config
from careercrm.models import JobStatus
from careercrm.reconcile import reconcile
from careercrm.scanner import HOUR_MS
from careercrm.store import RecordStore
from conftest import T0, FakeClassifier, FakeSource, make_analysis, make_email


class FakeGmail(FakeSource):
    def __init__(self, emails=None, fail_listing: bool = False):
        super().__init__(emails, fail_listing)
        self.authenticated = False

    def authenticate(self) -> None:
        self.authenticated = True


@pytest.fixture(autouse=True)
def isolated_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main, "LOG_DIR", tmp_path / "logs")
    monkeypatch.setattr(main, "LOCK_FILE", tmp_path / "scan.lock")


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "config.yaml"
    monkeypatch.setenv("CAREERCRM_CONFIG", str(path))
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    return path


@pytest.fixture
def install_gmail(monkeypatch: pytest.MonkeyPatch):
    def install(emails=None, fail_listing: bool = False) -> FakeGmail:
        source = FakeGmail(emails, fail_listing)
        monkeypatch.setattr(main, "GmailSource", lambda config: source)
        return source

    return install


def test_setup_merges_into_existing_config(config_path: Path) -> None:
    save_config(Config(google_client_id="client-1", max_results=7), config_path)

    assert main.main(["setup", "--gemini-api-key", "key-0123456789"]) == 0

    config = load_config(config_path)
    assert config.gemini_api_key == "key-0123456789"
    assert config.google_client_id == "client-1"
    assert config.max_results == 7


def test_board_reads_store(config_path: Path, tmp_path: Path, now, capsys) -> None:
    db = tmp_path / "crm.sqlite"
    records = []
    reconcile(records, make_analysis("Acme", JobStatus.INTERVIEWING), make_email("e1"), now)
    RecordStore(db).commit(records, 1)

    assert main.main(["--db", str(db), "board"]) == 0

    out = capsys.readouterr().out
    assert "== INTERVIEWING (1) ==" in out
    assert "Acme" in out


def test_scan_without_config_is_configuration_error(config_path: Path, tmp_path: Path, capsys) -> None:
    assert main.main(["--db", str(tmp_path / "crm.sqlite"), "scan"]) == 1
    assert "Configuration error" in capsys.readouterr().err


def test_wipe_clears_store_and_config(config_path: Path, tmp_path: Path, now) -> None:
    db = tmp_path / "crm.sqlite"
    save_config(Config(gemini_api_key="key-0123456789"), config_path)
    records = []
    reconcile(records, make_analysis("Acme"), make_email("e1"), now)
    RecordStore(db).commit(records, 10)

    assert main.main(["--db", str(db), "wipe", "--yes"]) == 0

    store = RecordStore(db)
    assert store.load() == []
    assert store.load_watermark() == 0
    assert not config_path.exists()


def test_wipe_aborts_without_confirmation(config_path: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    db = tmp_path / "crm.sqlite"
    RecordStore(db).save_watermark(10)
    monkeypatch.setattr("builtins.input", lambda prompt: "n")

    assert main.main(["--db", str(db), "wipe"]) == 1
    assert RecordStore(db).load_watermark() == 10


def test_setup_with_invalid_existing_config_is_configuration_error(config_path: Path, capsys) -> None:
    config_path.write_text("matcher: fuzzy\n")

    assert main.main(["setup", "--gemini-api-key", "key-0123456789"]) == 1

    assert "Configuration error" in capsys.readouterr().err
    assert config_path.read_text() == "matcher: fuzzy\n"


def test_auto_skips_scan_when_last_sync_is_recent(
    config_path: Path, tmp_path: Path, install_gmail, monkeypatch: pytest.MonkeyPatch
) -> None:
    db = tmp_path / "crm.sqlite"
    save_config(Config(gemini_api_key="key-0123456789"), config_path)
    RecordStore(db).save_watermark(T0 - HOUR_MS)
    monkeypatch.setattr(main, "now_ms", lambda: T0)
    gmail = install_gmail([make_email("e1", "a")])

    assert main.main(["--db", str(db), "auto"]) == 0

    assert gmail.authenticated
    assert gmail.listed_since == []
    assert RecordStore(db).load_watermark() == T0 - HOUR_MS
    assert RecordStore(db).load() == []


def test_auto_scans_when_last_sync_is_stale(
    config_path: Path, tmp_path: Path, install_gmail, monkeypatch: pytest.MonkeyPatch, capsys
) -> None:
    db = tmp_path / "crm.sqlite"
    stale = T0 - 25 * HOUR_MS
    save_config(Config(gemini_api_key="key-0123456789"), config_path)
    RecordStore(db).save_watermark(stale)
    monkeypatch.setattr(main, "now_ms", lambda: T0)
    monkeypatch.setattr(
        scanner, "GeminiClassifier", lambda config: FakeClassifier({"a": make_analysis("Acme")})
    )
    gmail = install_gmail([make_email("e1", "a")])

    assert main.main(["--db", str(db), "auto"]) == 0

    assert gmail.authenticated
    assert gmail.listed_since == [stale]
    store = RecordStore(db)
    assert [r.company for r in store.load()] == ["Acme"]
    assert store.load_watermark() > stale
    out = capsys.readouterr().out
    assert "Sync complete." in out
    assert "Total applications: 1" in out


def test_scan_listing_failure_exits_nonzero_and_keeps_store(
    config_path: Path, tmp_path: Path, install_gmail, now, capsys
) -> None:
    db = tmp_path / "crm.sqlite"
    save_config(Config(gemini_api_key="key-0123456789"), config_path)
    records = []
    reconcile(records, make_analysis("Acme", JobStatus.INTERVIEWING), make_email("e1"), now)
    RecordStore(db).commit(records, 42)
    install_gmail(fail_listing=True)

    assert main.main(["--db", str(db), "scan"]) == 1

    assert "Error during scan" in capsys.readouterr().out
    store = RecordStore(db)
    assert store.load_watermark() == 42
    assert [(r.id, r.company, r.status) for r in store.load()] == [("e1", "Acme", JobStatus.INTERVIEWING)]


@pytest.mark.parametrize("command", [["board"], ["contacts"], ["stats"], ["wipe", "--yes"]])
def test_read_commands_configure_logging(
    config_path: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, command: list[str]
) -> None:
    save_config(Config(gemini_api_key="key-0123456789", log_level="DEBUG"), config_path)
    levels = []
    monkeypatch.setattr(main, "setup_logging", levels.append)

    assert main.main(["--db", str(tmp_path / "crm.sqlite"), *command]) == 0

    assert levels == ["DEBUG"]


def test_read_commands_log_at_info_without_config(
    config_path: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    levels = []
    monkeypatch.setattr(main, "setup_logging", levels.append)

    assert main.main(["--db", str(tmp_path / "crm.sqlite"), "board"]) == 0

    assert levels == ["INFO"]
