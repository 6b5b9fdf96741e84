"""Tests for obtaining and parsing the workbook."""

import base64
from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from schematic_sync.core.export_client import DocExportClient, ExportProgress
from schematic_sync.errors import ExportError
from schematic_sync.pipeline import (
    build_current,
    fetch_workbook,
    load_workbook_bytes,
)

DONE = ExportProgress(
    status="Done",
    progress=100,
    file_url="https://cdn.example.com/f.xlsx",
    file_name="archive.xlsx",
)


def _fake_client(progress_sequence, workbook=b"xlsx-bytes"):
    client = MagicMock(spec=DocExportClient)
    client.submit_export.return_value = "op-9"
    client.query_progress.side_effect = progress_sequence
    client.download.return_value = workbook
    return client


async def test_fetch_polls_until_done():
    client = _fake_client(
        [
            ExportProgress(status="Processing", progress=10),
            ConnectionError("flaky"),
            DONE,
        ]
    )

    data = await fetch_workbook(client, interval=0)

    assert data == b"xlsx-bytes"
    assert client.query_progress.call_count == 3
    client.download.assert_called_once_with("https://cdn.example.com/f.xlsx")


async def test_fetch_non_done_terminal_status():
    client = _fake_client([ExportProgress(status="Failed")])

    with pytest.raises(ExportError, match="Failed"):
        await fetch_workbook(client, interval=0)
    client.download.assert_not_called()


async def test_fetch_done_without_url():
    client = _fake_client([ExportProgress(status="Done")])

    with pytest.raises(ExportError):
        await fetch_workbook(client, interval=0)


async def test_fetch_timeout():
    client = MagicMock(spec=DocExportClient)
    client.submit_export.return_value = "op-9"
    client.query_progress.return_value = ExportProgress(status="Processing")

    with pytest.raises(ExportError, match="still processing"):
        await fetch_workbook(client, interval=0.01, timeout=0.05)


async def test_local_file(mock_config, tmp_path):
    workbook = tmp_path / "archive.xlsx"
    workbook.write_bytes(b"local")
    config = replace(mock_config, local_file=str(workbook))

    assert await load_workbook_bytes(config) == b"local"


async def test_local_file_missing(mock_config, tmp_path):
    config = replace(mock_config, local_file=str(tmp_path / "missing.xlsx"))

    with pytest.raises(ExportError, match="Cannot read workbook"):
        await load_workbook_bytes(config)


async def test_remote_export_saves_copy(mock_config, tmp_path):
    copy = tmp_path / "cache" / "archive.xlsx"
    config = replace(mock_config, save_workbook=str(copy))
    client = _fake_client([DONE], workbook=b"remote")

    with patch(
        "schematic_sync.pipeline.DocExportClient", return_value=client
    ):
        data = await load_workbook_bytes(config)

    assert data == b"remote"
    assert copy.read_bytes() == b"remote"
    client.close.assert_called_once()


async def test_build_current(mock_config, tmp_path, make_workbook):
    good = base64.b64encode(b"schem").decode()
    workbook = tmp_path / "archive.xlsx"
    workbook.write_bytes(
        make_workbook(
            [
                ("cat", "me", "ok", "", good),
                ("cat", "me", "bad", "", "###"),
            ]
        )
    )
    config = replace(mock_config, local_file=str(workbook))

    result = await build_current(config)

    assert result.collection.keys() == {("cat", "ok")}
    assert [r.name for r in result.rejected] == ["bad"]
