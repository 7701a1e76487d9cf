from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from typst_pack.cli import app

runner = CliRunner()


def make_package(parent: Path) -> Path:
    root = parent / "cards"
    (root / "drafts").mkdir(parents=True)
    (root / "typst.toml").write_text(
        '#:schema https://example/schema.json\n'
        '[package]\nname = "cards"\nversion = "1.0.0"\nexclude = ["drafts"]\n'
    )
    (root / "main.typ").write_text("#let card = none\n")
    (root / "drafts" / "wip.typ").write_text("wip\n")
    return root


def test_build_prints_summary_and_writes_output(tmp_path: Path, monkeypatch) -> None:
    root = make_package(tmp_path)
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, [str(root)])

    assert result.exit_code == 0, result.output
    assert "Package 'cards' v1.0.0 built successfully" in result.output
    assert (tmp_path / "output" / "cards" / "1.0.0" / "main.typ").is_file()
    assert not (tmp_path / "output" / "cards" / "1.0.0" / "drafts").exists()


def test_build_accepts_manifest_file_and_universe_root(tmp_path: Path, monkeypatch) -> None:
    root = make_package(tmp_path)
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, [str(root / "typst.toml"), "--output-dir", "universe"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "universe" / "cards" / "1.0.0" / "typst.toml").is_file()


def test_dry_run_writes_nothing(tmp_path: Path, monkeypatch) -> None:
    root = make_package(tmp_path)
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, [str(root), "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "main.typ" in result.output
    assert "drafts" in result.output
    assert not (tmp_path / "output").exists()


def test_rejects_unknown_output_root(tmp_path: Path) -> None:
    root = make_package(tmp_path)

    result = runner.invoke(app, [str(root), "--output-dir", "dist"])

    assert result.exit_code != 0


def test_missing_manifest_is_reported(tmp_path: Path) -> None:
    result = runner.invoke(app, [str(tmp_path)])

    assert result.exit_code == 1
    assert "No typst.toml found" in result.output
