import pytest

from sheetping import config, main as main_mod
from sheetping.errors import FatalError

ARGS = ["--sheet", "abc", "--credentials", "key.json", "--hostname", "edge1", "--secret", "s3cr3t"]


def test_version_exits_zero_without_running(capsys, monkeypatch):
    def fail_open_store(sheet, credentials):  # pragma: no cover - must not run
        raise AssertionError("store opened")

    monkeypatch.setattr(main_mod, "open_store", fail_open_store)
    assert main_mod.main(["--version"]) == 0
    out = capsys.readouterr().out
    assert config.VERSION in out
    assert "Author" in out
    assert "Commit" in out


@pytest.mark.parametrize("flag", ["--sheet", "--credentials", "--hostname", "--secret"])
def test_missing_required_flag(flag, capsys):
    idx = ARGS.index(flag)
    argv = ARGS[:idx] + ARGS[idx + 2 :]
    assert main_mod.main(argv) == 1
    assert "must be supplied" in capsys.readouterr().out


def test_store_failure_is_fatal(monkeypatch):
    def broken_open_store(sheet, credentials):
        raise FatalError("unable to read key file")

    monkeypatch.setattr(main_mod, "open_store", broken_open_store)
    assert main_mod.main(ARGS) == 1


def test_runs_daemon_with_flags(monkeypatch):
    seen = {}

    async def fake_main_async(daemon):
        seen["daemon"] = daemon

    monkeypatch.setattr(main_mod, "open_store", lambda sheet, credentials: "store")
    monkeypatch.setattr(main_mod, "main_async", fake_main_async)
    assert main_mod.main(ARGS + ["--debug"]) == 0
    daemon = seen["daemon"]
    assert daemon.store == "store"
    assert daemon.hostname == "edge1"
    assert daemon.secret == "s3cr3t"
