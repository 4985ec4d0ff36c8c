from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from aidd_scaffold.config import ExecutionContext  # noqa: E402
from tests.fixtures.fakes import write_scaffold  # noqa: E402


@pytest.fixture(autouse=True)
def isolate_user_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep user level config and cache writes inside the test's temp dir."""

    home = tmp_path / "home" / ".aidd"
    monkeypatch.setattr("aidd_scaffold.config.CONFIG_FILE", home / "config.yml")
    monkeypatch.setattr("aidd_scaffold.config.DEFAULT_CACHE_DIR", home / "cache")
    monkeypatch.delenv("AIDD_CUSTOM_CREATE_URI", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    return home


@pytest.fixture()
def context(tmp_path: Path) -> ExecutionContext:
    return ExecutionContext.create(
        tmp_path / "project",
        agent_command="agent",
        cache_directory=tmp_path / "cache",
    )


@pytest.fixture()
def scaffolds_root(tmp_path: Path) -> Path:
    root = tmp_path / "scaffolds"
    write_scaffold(
        root / "basic",
        "steps:\n"
        "  - run: npm init -y\n"
        "  - run: npm pkg set type=module\n"
        "  - run: npm pkg set scripts.test=vitest\n"
        "  - run: npm install vitest eslint prettier\n",
    )
    return root
