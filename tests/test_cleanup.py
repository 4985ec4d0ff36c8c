from __future__ import annotations

from pathlib import Path

from aidd_scaffold.cleanup import cleanup, cleanup_project


def test_cleanup_removes_staging_and_empty_working_dir(tmp_path: Path):
    staging = tmp_path / ".aidd" / "scaffold"
    (staging / "bin").mkdir(parents=True)
    (staging / "SCAFFOLD-MANIFEST.yml").write_text("steps: []\n", encoding="utf-8")

    result = cleanup(staging)

    assert result.action == "removed"
    assert result.removed
    assert not staging.exists()
    assert not (tmp_path / ".aidd").exists()


def test_cleanup_keeps_non_empty_working_dir(tmp_path: Path):
    staging = tmp_path / ".aidd" / "scaffold"
    staging.mkdir(parents=True)
    (tmp_path / ".aidd" / "notes.txt").write_text("keep", encoding="utf-8")

    cleanup(staging)

    assert (tmp_path / ".aidd" / "notes.txt").exists()


def test_cleanup_is_idempotent_and_reports_nothing_to_remove(tmp_path: Path):
    staging = tmp_path / "cache" / "github-com-org-repo"
    staging.mkdir(parents=True)

    assert cleanup(staging).action == "removed"
    second = cleanup(staging)

    assert second.action == "not-found"
    assert not second.removed
    assert second.message.startswith("Nothing to clean up")
    assert str(staging) in second.message


def test_cleanup_project_targets_aidd_directory(tmp_path: Path):
    (tmp_path / ".aidd" / "scaffold").mkdir(parents=True)
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")

    result = cleanup_project(tmp_path)

    assert result.path == tmp_path / ".aidd"
    assert not (tmp_path / ".aidd").exists()
    assert (tmp_path / "package.json").exists()
    assert cleanup_project(tmp_path).action == "not-found"
