from __future__ import annotations

import json
from pathlib import Path

import pytest
from helpers import nested_if_tree
from typer.testing import CliRunner

import ferrolint.__main__ as main_mod
import ferrolint.engine.tree_sitter as ts
from ferrolint import __version__, scanner
from ferrolint.cli import app

NESTED_IF_SRC = "fn f() { if x { if y { z(); } } }"


def _crate_with_nested_if(root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(scanner, "parse_rust", lambda text: nested_if_tree(text))
    (root / "Cargo.toml").write_text("[package]\nname = 'demo'\n", encoding="utf-8")
    (root / "src").mkdir()
    (root / "src" / "lib.rs").write_text(NESTED_IF_SRC + "\n", encoding="utf-8")


def test_version_flag() -> None:
    res = CliRunner().invoke(app, ["--version"])
    assert res.exit_code == 0
    assert __version__ in res.output


def test_lints_command_json_lists_builtins() -> None:
    res = CliRunner().invoke(app, ["lints", "--format", "json"])
    assert res.exit_code == 0, res.output

    data = json.loads(res.stdout)
    assert [row["name"] for row in data] == ["collapsible_if", "new_without_default", "new_without_default_derive"]
    assert all(row["summary"] and row["explanation"] for row in data)


def test_lints_command_terminal_table() -> None:
    res = CliRunner().invoke(app, ["lints"])
    assert res.exit_code == 0
    assert "collapsible_if" in res.output
    assert "ferrolint lints" in res.output


def test_lints_command_rejects_unknown_format() -> None:
    res = CliRunner().invoke(app, ["lints", "--format", "xml"])
    assert res.exit_code != 0


def test_check_empty_directory_passes(tmp_path: Path) -> None:
    res = CliRunner().invoke(app, ["check", str(tmp_path)])
    assert res.exit_code == 0, res.output
    assert "0 finding(s) in 0 files checked." in res.output


def test_check_json_output(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _crate_with_nested_if(tmp_path, monkeypatch)

    res = CliRunner().invoke(app, ["check", str(tmp_path), "--format", "json", "--no-fail"])
    assert res.exit_code == 0, res.output

    payload = json.loads(res.stdout)
    assert payload["files_checked"] == 1
    assert [f["lint"] for f in payload["findings"]] == ["collapsible_if"]
    assert payload["findings"][0]["location"]["path"] == "src/lib.rs"


def test_check_fails_on_findings_by_default(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _crate_with_nested_if(tmp_path, monkeypatch)

    res = CliRunner().invoke(app, ["check", str(tmp_path)])
    assert res.exit_code == 1
    assert "src/lib.rs:1:10: collapsible_if: this if statement can be collapsed" in res.output


def test_check_rejects_unknown_format(tmp_path: Path) -> None:
    res = CliRunner().invoke(app, ["check", str(tmp_path), "--format", "sarif"])
    assert res.exit_code == 2


def test_check_reports_invalid_configuration(tmp_path: Path) -> None:
    (tmp_path / "ferrolint.toml").write_text('allow = ["no_such_lint"]\n', encoding="utf-8")

    res = CliRunner().invoke(app, ["check", str(tmp_path)])
    assert res.exit_code == 2
    assert "Invalid configuration" in res.output


def test_check_warns_when_tree_sitter_is_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ts, "_TREE_SITTER_AVAILABLE", False)
    (tmp_path / "lib.rs").write_text(NESTED_IF_SRC + "\n", encoding="utf-8")

    res = CliRunner().invoke(app, ["check", str(tmp_path)])
    assert res.exit_code == 0
    assert "Skipped 1 file(s)" in res.output

    quiet = CliRunner().invoke(app, ["--quiet", "check", str(tmp_path)])
    assert quiet.exit_code == 0
    assert "Skipped" not in quiet.output


def test_verbose_and_quiet_are_exclusive(tmp_path: Path) -> None:
    res = CliRunner().invoke(app, ["--verbose", "--quiet", "check", str(tmp_path)])
    assert res.exit_code == 2


def test_verbose_enables_debug_logging(tmp_path: Path) -> None:
    res = CliRunner().invoke(app, ["--verbose", "check", str(tmp_path)])
    assert res.exit_code == 0
    assert "checking 0 file(s)" in res.output


def test_main_calls_cli_app(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr(main_mod, "app", lambda prog_name: calls.append(prog_name))
    main_mod.main()
    assert calls == ["ferrolint"]


def test_short_quiet_flag_reaches_check_command(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ts, "_TREE_SITTER_AVAILABLE", False)
    (tmp_path / "a.rs").write_text(NESTED_IF_SRC + "\n", encoding="utf-8")
    (tmp_path / "b.rs").write_text("fn g() {}\n", encoding="utf-8")

    res = CliRunner().invoke(app, ["-q", "check", str(tmp_path), "--format", "json"])

    assert res.exit_code == 0, res.output
    assert "Skipped" not in res.output
    assert json.loads(res.stdout)["files_skipped"] == ["a.rs", "b.rs"]
