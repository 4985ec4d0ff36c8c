from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from aidd_scaffold.cleanup import cleanup
from aidd_scaffold.config import ExecutionContext
from aidd_scaffold.create import run_create, run_verify
from aidd_scaffold.errors import ScaffoldCancelledError, ScaffoldStepError, ScaffoldValidationError
from aidd_scaffold.fetch import ReleaseFetcher
from aidd_scaffold.sources import NamedSource, RemoteSource
from tests.fixtures.fakes import FakeOpener, RecordingConfirm, RecordingExecutor, make_tarball, write_scaffold

ARCHIVE = "https://example.com/releases/scaffold-1.0.0.tar.gz"


def _remote_opener(manifest: str = "steps:\n  - run: echo one\n  - run: echo two\n") -> FakeOpener:
    return FakeOpener(
        {ARCHIVE: make_tarball({"README.md": "# Remote\n", "SCAFFOLD-MANIFEST.yml": manifest})}
    )


class _CountingCleanup:
    def __init__(self) -> None:
        self.locations: list[Path] = []

    def __call__(self, location: Path):
        self.locations.append(location)
        return cleanup(location)


@pytest.fixture()
def cleanup_spy(monkeypatch: pytest.MonkeyPatch) -> _CountingCleanup:
    spy = _CountingCleanup()
    monkeypatch.setattr("aidd_scaffold.create.cleanup", spy)
    return spy


def test_named_scaffold_runs_all_four_steps(context: ExecutionContext, scaffolds_root: Path, cleanup_spy):
    executor = RecordingExecutor()
    echoed: list[str] = []

    result = asyncio.run(
        run_create(
            NamedSource("basic"),
            context,
            executor=executor,
            scaffolds_root=scaffolds_root,
            echo=echoed.append,
        )
    )

    assert result.steps_run == 4
    assert not result.was_downloaded
    assert result.cleanup is not None and not result.cleanup.removed
    assert result.cleanup.message.startswith("Nothing to clean up")
    assert result.cleanup.path == (scaffolds_root / "basic").resolve()
    assert (scaffolds_root / "basic" / "SCAFFOLD-MANIFEST.yml").is_file()
    assert cleanup_spy.locations == []
    assert [call[1] for call in executor.calls] == [
        "npm init -y",
        "npm pkg set type=module",
        "npm pkg set scripts.test=vitest",
        "npm install vitest eslint prettier",
    ]
    assert context.target_directory.is_dir()
    assert echoed == ["\n# Example scaffold\n"]


def test_invalid_manifest_runs_nothing_and_creates_nothing(context: ExecutionContext, tmp_path: Path):
    root = tmp_path / "scaffolds"
    write_scaffold(root / "ambiguous", "steps:\n  - run: echo a\n  - run: echo b\n    prompt: b\n")
    executor = RecordingExecutor()

    with pytest.raises(ScaffoldValidationError, match="step 2"):
        asyncio.run(run_create(NamedSource("ambiguous"), context, executor=executor, scaffolds_root=root))

    assert executor.calls == []
    assert not context.target_directory.exists()


def test_remote_success_cleans_staging_once(context: ExecutionContext, cleanup_spy):
    executor = RecordingExecutor()

    result = asyncio.run(
        run_create(
            RemoteSource(ARCHIVE),
            context,
            confirm=RecordingConfirm(),
            fetcher=ReleaseFetcher(opener=_remote_opener()),
            executor=executor,
            echo=lambda line: None,
        )
    )

    assert result.was_downloaded
    assert result.steps_run == 2
    assert result.cleanup is not None and result.cleanup.removed
    assert len(cleanup_spy.locations) == 1
    assert not cleanup_spy.locations[0].exists()


def test_remote_step_failure_still_cleans_up(context: ExecutionContext, cleanup_spy):
    context.target_directory.mkdir()
    executor = RecordingExecutor(exit_codes={1: 2})

    with pytest.raises(ScaffoldStepError) as excinfo:
        asyncio.run(
            run_create(
                RemoteSource(ARCHIVE),
                context,
                confirm=RecordingConfirm(),
                fetcher=ReleaseFetcher(opener=_remote_opener()),
                executor=executor,
                echo=lambda line: None,
            )
        )

    assert excinfo.value.step_index == 1
    assert len(executor.calls) == 1
    assert cleanup_spy.locations == [context.target_directory / ".aidd" / "scaffold"]
    assert not (context.target_directory / ".aidd").exists()


def test_remote_invalid_manifest_still_cleans_up(context: ExecutionContext, cleanup_spy):
    executor = RecordingExecutor()

    with pytest.raises(ScaffoldValidationError):
        asyncio.run(
            run_create(
                RemoteSource(ARCHIVE),
                context,
                confirm=RecordingConfirm(),
                fetcher=ReleaseFetcher(opener=_remote_opener('steps: "not an array"\n')),
                executor=executor,
                echo=lambda line: None,
            )
        )

    assert executor.calls == []
    assert len(cleanup_spy.locations) == 1
    assert not cleanup_spy.locations[0].exists()


def test_declined_remote_is_clean_cancellation(context: ExecutionContext, tmp_path: Path, cleanup_spy):
    opener = _remote_opener()
    executor = RecordingExecutor()
    before = sorted(tmp_path.rglob("*"))

    with pytest.raises(ScaffoldCancelledError):
        asyncio.run(
            run_create(
                RemoteSource(ARCHIVE),
                context,
                confirm=RecordingConfirm(False),
                fetcher=ReleaseFetcher(opener=opener),
                executor=executor,
            )
        )

    assert opener.requests == []
    assert executor.calls == []
    assert cleanup_spy.locations == []
    assert sorted(tmp_path.rglob("*")) == before


def test_run_verify_reports_without_running(context: ExecutionContext, scaffolds_root: Path):
    write_scaffold(scaffolds_root / "broken", "steps:\n  - 42\n")

    ok = asyncio.run(run_verify(NamedSource("basic"), context, scaffolds_root=scaffolds_root))
    broken = asyncio.run(run_verify(NamedSource("broken"), context, scaffolds_root=scaffolds_root))

    assert ok.valid and len(ok.steps) == 4
    assert not broken.valid
    assert "step 1" in broken.errors[0]


def test_run_verify_cleans_remote_staging(context: ExecutionContext, cleanup_spy):
    result = asyncio.run(
        run_verify(
            RemoteSource(ARCHIVE),
            context,
            confirm=RecordingConfirm(),
            fetcher=ReleaseFetcher(opener=_remote_opener()),
        )
    )

    assert result.valid
    assert len(cleanup_spy.locations) == 1
    assert not cleanup_spy.locations[0].exists()
