from pathlib import Path

import pytest

from plastic_bridge.core.errors import (
    ExternalToolError,
    ProviderConfigurationError,
    WorkspaceUnavailableError,
)
from plastic_bridge.services.workspace_service import WorkspaceService


def _create_on_mkwk(working_dir, name, path):
    Path(path).mkdir(parents=True)
    return [f"Workspace {name} has been correctly created"]


def test_workspace_path_is_derived_from_repository_and_ticks(workspace_service, tmp_path: Path) -> None:
    expected = (tmp_path / "PlasticWorkspaces" / "game_638000000000000000").resolve()

    assert workspace_service.workspace_path() == expected
    assert workspace_service.registration_name() == "BuildMaster_game_638000000000000000"


def test_ensure_workspace_registers_missing_workspace(workspace_service, fake_process) -> None:
    fake_process.on("mkwk", _create_on_mkwk)

    workspace = workspace_service.ensure_workspace()

    path = workspace_service.workspace_path()
    assert workspace.location == path
    assert workspace.name == "BuildMaster_game_638000000000000000"
    # 目录还不存在，不需要先问 `wi`；注册后不自动选分支。
    assert fake_process.commands() == ["mkwk"]
    assert fake_process.calls[0] == (None, "mkwk", ("BuildMaster_game_638000000000000000", str(path)))


def test_first_prepare_selects_branch_once(workspace_service, fake_process) -> None:
    fake_process.on("mkwk", _create_on_mkwk)

    workspace = workspace_service.prepare()

    assert fake_process.commands() == ["mkwk", "stb", "upd"]
    assert fake_process.calls[1] == (workspace.location, "stb", ("br:/main", "--repository=game"))


def test_ensure_workspace_reuses_registered_workspace(
    workspace_service, fake_process, registered_workspace: Path
) -> None:
    workspace = workspace_service.ensure_workspace()

    assert workspace.location == registered_workspace
    assert fake_process.commands() == ["wi"]


def test_ensure_workspace_registers_when_not_in_workspace(workspace_service, fake_process) -> None:
    workspace_service.workspace_path().mkdir(parents=True)
    fake_process.on("wi", ["The path is not in a workspace."])

    workspace_service.ensure_workspace()

    assert fake_process.commands() == ["wi", "mkwk"]


def test_ensure_workspace_registers_when_info_fails(workspace_service, fake_process) -> None:
    workspace_service.workspace_path().mkdir(parents=True)
    fake_process.on("wi", ExternalToolError("wi", "Error: not a workspace", 1))

    workspace_service.ensure_workspace()

    assert fake_process.commands() == ["wi", "mkwk"]


def test_ensure_workspace_propagates_registration_failure(workspace_service, fake_process) -> None:
    fake_process.on("mkwk", ExternalToolError("mkwk", "The workspace name is already in use", 1))

    with pytest.raises(ExternalToolError):
        workspace_service.ensure_workspace()

    assert "stb" not in fake_process.commands()


def test_ensure_workspace_requires_created_directory(workspace_service, fake_process) -> None:
    fake_process.on("mkwk", ["ok"])

    with pytest.raises(WorkspaceUnavailableError):
        workspace_service.ensure_workspace()


def test_named_workspace_variant(tmp_path: Path, fake_process) -> None:
    service = WorkspaceService(
        fake_process,
        tmp_path,
        repository_name="",
        workspace_name="build-agent-01",
    )
    fake_process.on("mkwk", _create_on_mkwk)

    workspace = service.prepare(update=False)

    assert workspace.location == (tmp_path / "build-agent-01").resolve()
    assert fake_process.calls_for("mkwk")[0][0] == "build-agent-01"
    assert fake_process.calls_for("stb") == [("br:/main",)]


def test_missing_configuration(tmp_path: Path, fake_process) -> None:
    with pytest.raises(ProviderConfigurationError):
        WorkspaceService(fake_process, tmp_path, repository_name="").workspace_path()

    with pytest.raises(ProviderConfigurationError):
        WorkspaceService(fake_process, tmp_path, repository_name="../etc").workspace_path()


def test_prepare_switches_branch_then_updates(
    workspace_service, fake_process, registered_workspace: Path
) -> None:
    workspace_service.prepare()
    workspace_service.prepare(update=False)

    assert fake_process.commands() == ["wi", "stb", "upd", "wi", "stb"]
    assert fake_process.calls[2] == (registered_workspace, "upd", (".",))


def test_switch_to_label(workspace_service, fake_process, registered_workspace: Path) -> None:
    workspace = workspace_service.ensure_workspace()

    workspace_service.switch_to_label(workspace, "v1.2")

    assert fake_process.calls_for("stb") == [("--label=v1.2", "--repository=game")]


def test_repository_name_may_contain_double_dots(tmp_path: Path, fake_process) -> None:
    service = WorkspaceService(fake_process, tmp_path, repository_name="game..v2", created_ticks="7")

    assert service.workspace_path() == (tmp_path / "game..v2_7").resolve()
    assert service.registration_name() == "BuildMaster_game..v2_7"

    with pytest.raises(ProviderConfigurationError):
        WorkspaceService(fake_process, tmp_path, repository_name="", workspace_name="..").workspace_path()
