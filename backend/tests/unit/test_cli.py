from pathlib import Path

import pytest
from typer.testing import CliRunner

from backend.src.cli import app
from backend.src.models.document import Document
from backend.src.services import config as config_module
from backend.src.services.config import AppConfig
from backend.src.services.vault import VaultService

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("VAULT_PATH", str(tmp_path / "default"))
    config_module.get_config.cache_clear()
    yield
    config_module.get_config.cache_clear()


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    return tmp_path / "vault"


@pytest.fixture
def service(vault_dir: Path) -> VaultService:
    return VaultService(config=AppConfig(vault_path=vault_dir))


def test_check_reports_consistent_vault(vault_dir: Path) -> None:
    result = runner.invoke(app, ["--vault", str(vault_dir), "check"])

    assert result.exit_code == 0
    assert "Vault is consistent." in result.stdout


def test_check_strict_fails_when_fixes_applied(vault_dir: Path) -> None:
    vault_dir.mkdir()
    (vault_dir / "bare.md").write_text("no frontmatter", encoding="utf-8")

    result = runner.invoke(app, ["--vault", str(vault_dir), "check", "--strict"])

    assert result.exit_code == 1
    assert "Saved fixed document: bare" in result.stdout

    again = runner.invoke(app, ["--vault", str(vault_dir), "check", "--strict"])
    assert again.exit_code == 0


def test_scan_counts_documents(service: VaultService, vault_dir: Path) -> None:
    service.save_document(Document(name="One"))
    service.save_document(Document(name="Two"))

    result = runner.invoke(app, ["--vault", str(vault_dir), "scan"])

    assert result.exit_code == 0
    assert "2 documents" in result.stdout


def test_backlinks_lists_linking_documents(service: VaultService, vault_dir: Path) -> None:
    target = service.save_document(Document(name="Target"))
    service.save_document(Document(name="Source", content="[[Target]]"))

    result = runner.invoke(app, ["--vault", str(vault_dir), "backlinks", target.id])

    assert result.exit_code == 0
    assert "Source" in result.stdout


def test_backlinks_unknown_document_exits_nonzero(vault_dir: Path) -> None:
    result = runner.invoke(app, ["--vault", str(vault_dir), "backlinks", "doc-missing"])

    assert result.exit_code == 1
    assert "doc-missing" in result.stdout


def test_migrate_links(service: VaultService, vault_dir: Path) -> None:
    target = service.save_document(Document(name="Target"))
    source = service.save_document(Document(name="Source", content="[[Target]]"))

    result = runner.invoke(app, ["--vault", str(vault_dir), "migrate-links"])

    assert result.exit_code == 0
    assert "Migrated 1 links" in result.stdout
    assert service.get_document(source.id).content == f"[[id:{target.id}|Target]]"
