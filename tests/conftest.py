"""Shared pytest fixtures for schematic-sync tests."""

import base64
import io

import pytest
from openpyxl import Workbook

from schematic_sync.config import Config
from schematic_sync.sync.models import SchematicRecord

SHEET = "智能表1"
HEADER = ("分类", "作者", "名称", "简介", "蓝图")


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    """Keep the developer's environment and config files out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("SCHEMATIC_SYNC_") or key in (
            "QQ_DOC_COOKIES",
            "LOG_LEVEL",
        ):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@pytest.fixture
def make_record():
    """Factory for SchematicRecord built from raw bytes."""

    def _make(category: str, name: str, data: bytes) -> SchematicRecord:
        return SchematicRecord(category=category, name=name, content=b64(data))

    return _make


@pytest.fixture
def make_workbook():
    """Factory building .xlsx bytes with the schematic sheet."""

    def _make(rows, sheet_name: str = SHEET, header=HEADER) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_name
        if header is not None:
            ws.append(list(header))
        for row in rows:
            ws.append(list(row))
        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()

    return _make


@pytest.fixture
def mock_config(tmp_path):
    """Remote-export Config pointing at a temp output directory."""
    return Config(
        cookies="uid=1; token=abc",
        base_url="https://docs.example.com",
        output_dir=str(tmp_path / "schematics"),
        poll_interval=0.01,
    )
