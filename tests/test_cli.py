"""Tests for the sksecrets command line via Click's test runner."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from sksecrets import checksum
from sksecrets.cli import main
from sksecrets.config import CONFIG_NAME

from conftest import CONFIG_TEXT


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / CONFIG_NAME
    path.write_text(CONFIG_TEXT)
    return path


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    monkeypatch.delenv("SKSECRETS_PASSPHRASE", raising=False)
    monkeypatch.delenv("SKSECRETS_PROFILE", raising=False)
    return CliRunner()


def _base(config_file: Path, profile: str = "alice") -> list[str]:
    return ["--config", str(config_file), "--profile", profile]


class TestCLI:
    """End-to-end command line usage."""

    def test_help(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("export", "import", "verify", "checksum", "check-config"):
            assert command in result.output

    def test_check_config(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(main, _base(config_file) + ["check-config"])
        assert result.exit_code == 0, result.output
        assert "Config is valid" in result.output
        assert "bob.token" in result.output

    def test_invalid_config_exits_nonzero(self, runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("secrets:\n  a: [x]\n  b: [x]\n")
        result = runner.invoke(main, ["--config", str(bad), "check-config"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_checksum_seals_sources(
        self, runner: CliRunner, config_file: Path, tmp_path: Path
    ) -> None:
        source = tmp_path / "plain"
        (source / "ssh").mkdir(parents=True)
        (source / "db.key").write_bytes(b"k1")
        (source / "ssh" / "id_ed25519").write_bytes(b"key")

        result = runner.invoke(
            main, _base(config_file) + ["checksum", "--source", str(source)],
        )
        assert result.exit_code == 0, result.output
        checksum.verify_one(source, "db.key")
        checksum.verify_one(source, "ssh/id_ed25519")
        assert checksum.verify_all(source) == 2

    def test_export_verify_import(
        self,
        runner: CliRunner,
        config_file: Path,
        source_root: Path,
        export_root: Path,
        import_root: Path,
    ) -> None:
        result = runner.invoke(
            main,
            _base(config_file) + [
                "export", str(export_root), "--source", str(source_root), "--no-executable",
            ],
            input="pw\npw\n",
        )
        assert result.exit_code == 0, result.output
        assert "Export Complete" in result.output
        assert (export_root / "db.key.enc").exists()

        result = runner.invoke(main, ["verify", str(export_root)])
        assert result.exit_code == 0, result.output
        assert "verified" in result.output

        result = runner.invoke(
            main,
            _base(config_file) + ["import", str(export_root), "--target", str(import_root)],
            input="pw\n",
        )
        assert result.exit_code == 0, result.output
        assert (import_root / "db.key").read_bytes() == b"k1"

    def test_export_passphrase_mismatch_reprompts(
        self, runner: CliRunner, config_file: Path, source_root: Path, export_root: Path
    ) -> None:
        result = runner.invoke(
            main,
            _base(config_file) + [
                "export", str(export_root), "--source", str(source_root), "--no-executable",
            ],
            input="pw\nPW\npw\npw\n",
        )
        assert result.exit_code == 0, result.output
        assert "do not match" in result.output

    def test_import_failure_reports_unreliable_tree(
        self,
        runner: CliRunner,
        config_file: Path,
        source_root: Path,
        export_root: Path,
        import_root: Path,
    ) -> None:
        runner.invoke(
            main,
            _base(config_file) + [
                "export", str(export_root), "--source", str(source_root), "--no-executable",
            ],
            env={"SKSECRETS_PASSPHRASE": "pw"},
        )
        result = runner.invoke(
            main,
            _base(config_file) + ["import", str(export_root), "--target", str(import_root)],
            env={"SKSECRETS_PASSPHRASE": "wrong"},
        )
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "unreliable" in result.output

    def test_verify_corrupted_export(
        self, runner: CliRunner, export_root: Path
    ) -> None:
        (export_root / checksum.MANIFEST_NAME).write_text("not a manifest\n")
        result = runner.invoke(main, ["verify", str(export_root)])
        assert result.exit_code == 1
        assert "ill-formatted" in result.output
