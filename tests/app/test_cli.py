from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from splkit.api.schema import FidelityReportModel, PathComparisonModel, ProgressResponse
from splkit.ui import cli as cli_module

if TYPE_CHECKING:
    from pathlib import Path

HANDLE = "doc_" + "ab" * 16


def _progress(status: str = "succeeded", **fields: object) -> ProgressResponse:
    return ProgressResponse.model_validate(
        {"operation_id": "op-1", "kind": "import", "status": status, "percent": 100, **fields}
    )


def test_import_submits_files_in_order(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    first = tmp_path / "a.xml"
    second = tmp_path / "b.xml"
    first.write_bytes(b"<first/>")
    second.write_bytes(b"<second/>")
    captured: dict[str, object] = {}

    def fake_submit(payloads: list[bytes]) -> str:
        captured["payloads"] = payloads
        return "op-1"

    def fake_wait(operation_id: str, *, timeout: float | None = None) -> ProgressResponse:
        captured["wait"] = (operation_id, timeout)
        return _progress(result=[])

    monkeypatch.setattr(cli_module, "submit_import", fake_submit)
    monkeypatch.setattr(cli_module, "wait_for", fake_wait)

    cli_module.main(["import", str(second), str(first), "--timeout", "30"])

    assert captured["payloads"] == [b"<second/>", b"<first/>"]
    assert captured["wait"] == ("op-1", 30.0)
    assert json.loads(capsys.readouterr().out)["status"] == "succeeded"


def test_import_of_missing_file_is_a_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["import", str(tmp_path / "missing.xml")])

    assert excinfo.value.code == 2


def test_malformed_handle_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["export", "prd_" + "ab" * 16])

    assert excinfo.value.code == 2


def test_export_writes_to_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: dict[str, object] = {}

    def fake_export(handle: str, *, minify: bool = False) -> str:
        captured.update(handle=handle, minify=minify)
        return "<document/>"

    monkeypatch.setattr(cli_module, "export_document", fake_export)
    target = tmp_path / "out.xml"

    cli_module.main(["export", HANDLE, "--minify", "--output", str(target)])

    assert captured == {"handle": HANDLE, "minify": True}
    assert target.read_text(encoding="utf-8") == "<document/>"


def test_compare_hides_matches_unless_asked(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    report = FidelityReportModel(
        document_handle=HANDLE,
        is_faithful=False,
        counts={"match": 1, "missing": 1, "extra": 0, "value_mismatch": 0},
        by_entity={"section": 1},
        by_section={"34067-9": 1},
        entries=[
            PathComparisonModel(path="/document[1]", verdict="match", entity_kind="document"),
            PathComparisonModel(
                path="/document[1]/title[1]", verdict="missing", entity_kind="document"
            ),
        ],
    )
    monkeypatch.setattr(cli_module, "submit_comparison", lambda handle, source_payload=None: "op-2")
    monkeypatch.setattr(cli_module, "wait_for", lambda operation_id: _progress(result=report))

    cli_module.main(["compare", HANDLE])
    brief = json.loads(capsys.readouterr().out)
    cli_module.main(["compare", HANDLE, "--all"])
    full = json.loads(capsys.readouterr().out)

    assert [e["verdict"] for e in brief["result"]["entries"]] == ["missing"]
    assert len(full["result"]["entries"]) == 2


def test_failed_operation_exits_with_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    payload = tmp_path / "broken.xml"
    payload.write_bytes(b"<document")
    failed = _progress(
        "failed",
        error={"kind": "malformed_document", "message": "not well-formed", "location": "line 1, column 9"},
    )
    monkeypatch.setattr(cli_module, "submit_import", lambda payloads: "op-1")
    monkeypatch.setattr(cli_module, "wait_for", lambda operation_id, timeout=None: failed)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["import", str(payload)])

    assert excinfo.value.code == 1


def test_documents_current_without_versions_exits_with_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "current_document", lambda set_guid: None)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["documents", "some-set", "--current"])

    assert excinfo.value.code == 1


def test_unknown_command_is_rejected_by_argparse() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["frobnicate"])

    assert excinfo.value.code == 2
