"""End-to-end tests for the schematic-sync command line."""

import base64
import json
from unittest.mock import MagicMock

import pytest

from schematic_sync import cli
from schematic_sync.errors import (
    EXIT_CONFIG_ERROR,
    EXIT_EXPORT_ERROR,
    EXIT_OK,
    EXIT_RECORD_FAILURES,
)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch):
    """Leave pytest's log capture in charge of the root logger."""
    monkeypatch.setattr(cli, "setup_logging", MagicMock())


@pytest.fixture
def workbook(tmp_path, make_workbook):
    path = tmp_path / "archive.xlsx"
    path.write_bytes(
        make_workbook(
            [
                ("logic", "alice", "Clock", "", _b64(b"clock")),
                ("power", "bob", "Reactor/v2", "", _b64(b"reactor")),
                ("power", "bob", "Broken", "", "not base64!"),
            ]
        )
    )
    return path


@pytest.fixture
def out_dir(tmp_path):
    return tmp_path / "schematics"


def _main(*args):
    return cli.main([str(a) for a in args])


def test_local_workbook_creates_tree(workbook, out_dir, capsys):
    code = _main("--local-file", workbook, "--output-dir", out_dir)

    assert code == EXIT_OK
    assert (out_dir / "logic" / "Clock.msch").read_bytes() == b"clock"
    assert (out_dir / "power" / "Reactor-v2.msch").read_bytes() == b"reactor"
    assert not (out_dir / "power" / "Broken.msch").exists()

    out = capsys.readouterr().out
    assert "Total schematics: 2, 2 saved" in out
    assert "Rejected rows:" in out
    assert "Broken" in out


def test_second_run_is_unchanged(workbook, out_dir, capsys):
    _main("--local-file", workbook, "--output-dir", out_dir)
    capsys.readouterr()

    code = _main("--local-file", workbook, "--output-dir", out_dir)

    assert code == EXIT_OK
    assert "0 saved, 2 unchanged, 0 deleted" in capsys.readouterr().out


def test_stale_file_deleted(workbook, out_dir):
    stale = out_dir / "retired" / "Old.msch"
    stale.parent.mkdir(parents=True)
    stale.write_bytes(b"old")

    assert _main("--local-file", workbook, "--output-dir", out_dir) == EXIT_OK

    assert not stale.exists()
    assert not stale.parent.exists()


def test_dry_run_leaves_tree_alone(workbook, out_dir, capsys):
    code = _main("--local-file", workbook, "--output-dir", out_dir, "--dry-run")

    assert code == EXIT_OK
    assert not out_dir.exists()
    out = capsys.readouterr().out
    assert "(DRY RUN)" in out
    assert "2 would be saved" in out


def test_json_report(workbook, out_dir, capsys):
    code = _main("--local-file", workbook, "--output-dir", out_dir, "--json")

    assert code == EXIT_OK
    data = json.loads(capsys.readouterr().out)
    assert data["counts"]["created"] == 2
    assert data["counts"]["rejected"] == 1
    assert {c["name"] for c in data["changes"]} == {"Clock", "Reactor/v2"}
    assert data["rejected"][0]["name"] == "Broken"


def test_denylist_from_env(workbook, out_dir, monkeypatch):
    monkeypatch.setenv("SCHEMATIC_SYNC_DENIED_AUTHORS", "bob")

    assert _main("--local-file", workbook, "--output-dir", out_dir) == EXIT_OK

    assert (out_dir / "logic" / "Clock.msch").exists()
    assert not (out_dir / "power").exists()


def test_yaml_output_dir(workbook, tmp_path):
    cfg = tmp_path / ".schematic_sync" / "config.yml"
    cfg.parent.mkdir()
    cfg.write_text("output:\n  dir: from-yaml\n", encoding="utf-8")

    assert _main("--local-file", workbook) == EXIT_OK

    assert (tmp_path / "from-yaml" / "logic" / "Clock.msch").exists()


def test_record_failure_exit_code(workbook, out_dir, capsys):
    out_dir.mkdir()
    # A plain file where the category directory should go
    (out_dir / "logic").write_bytes(b"")

    code = _main("--local-file", workbook, "--output-dir", out_dir)

    assert code == EXIT_RECORD_FAILURES
    assert (out_dir / "power" / "Reactor-v2.msch").exists()
    assert "Errors:" in capsys.readouterr().out


def test_missing_cookie_is_config_error(out_dir):
    assert _main("--output-dir", out_dir) == EXIT_CONFIG_ERROR


def test_invalid_yaml_is_config_error(tmp_path, workbook):
    cfg = tmp_path / ".schematic_sync" / "config.yml"
    cfg.parent.mkdir()
    cfg.write_text("output:\n  max_parallel_io: 0\n", encoding="utf-8")

    assert _main("--local-file", workbook) == EXIT_CONFIG_ERROR


def test_missing_workbook_is_export_error(tmp_path, out_dir):
    code = _main(
        "--local-file", tmp_path / "missing.xlsx", "--output-dir", out_dir
    )
    assert code == EXIT_EXPORT_ERROR
    assert not out_dir.exists()


def test_missing_sheet_is_export_error(workbook, out_dir):
    code = _main(
        "--local-file", workbook, "--output-dir", out_dir, "--sheet", "Nope"
    )
    assert code == EXIT_EXPORT_ERROR


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        _main("--version")
    assert exc_info.value.code == 0
    assert "schematic-sync version" in capsys.readouterr().out
