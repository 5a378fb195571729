from __future__ import annotations

from collections.abc import Callable
import os
from pathlib import Path
import tempfile

import pytest

# keep settings side effects (data dir creation) out of the working tree
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="plastic-bridge-tests-"))

from plastic_bridge.services.workspace_service import WorkspaceService  # noqa: E402


class FakeProcess:
    """Stands in for ProcessService: records calls, replays scripted output."""

    def __init__(self, executable: str = "/opt/plastic/client/cm") -> None:
        self.executable = executable
        self.calls: list[tuple[Path | None, str, tuple[str, ...]]] = []
        self._handlers: dict[str, object] = {}

    def on(self, command: str, result: list[str] | Exception | Callable[..., list[str]]) -> None:
        self._handlers[command] = result

    def run(self, working_dir: Path | None, command: str, *args: str | None) -> list[str]:
        arg_list = tuple(arg for arg in args if arg is not None)
        self.calls.append((working_dir, command, arg_list))
        handler = self._handlers.get(command, [])
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return list(handler(working_dir, *arg_list))
        return list(handler)

    def commands(self) -> list[str]:
        return [command for _, command, _ in self.calls]

    def calls_for(self, command: str) -> list[tuple[str, ...]]:
        return [args for _, name, args in self.calls if name == command]


@pytest.fixture
def fake_process() -> FakeProcess:
    return FakeProcess()


@pytest.fixture
def workspace_service(tmp_path: Path, fake_process: FakeProcess) -> WorkspaceService:
    return WorkspaceService(
        fake_process,
        tmp_path / "PlasticWorkspaces",
        repository_name="game",
        created_ticks="638000000000000000",
    )


@pytest.fixture
def registered_workspace(workspace_service: WorkspaceService, fake_process: FakeProcess) -> Path:
    """Workspace directory that `wi` already reports as registered."""
    path = workspace_service.workspace_path()
    path.mkdir(parents=True)
    fake_process.on("wi", [f"BuildMaster_game_638000000000000000@{path}@local"])
    return path
