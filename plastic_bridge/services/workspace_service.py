from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from plastic_bridge.core.config import DEFAULT_BRANCH, settings
from plastic_bridge.core.errors import (
    ExternalToolError,
    ProviderConfigurationError,
    WorkspaceUnavailableError,
)
from plastic_bridge.services.process_service import ProcessService

logger = logging.getLogger(__name__)

_NOT_IN_WORKSPACE = "not in a workspace"


@dataclass(frozen=True)
class WorkspaceInfo:
    location: Path
    name: str | None = None

    def __str__(self) -> str:
        return str(self.location)


class WorkspaceService:
    """本地工作区生命周期管理。

    状态流转：
    1) 未绑定：工作区路径下没有已注册的工作区。
    2) 已注册：`mkwk` 创建工作区。
    3) 已选分支：`stb` 指向配置的分支（或标签）。
    4) 已更新：`upd` 同步到选择器的最新状态。

    后三个状态不跨调用保留：`ensure_workspace` 只负责注册，
    每个操作都要重新选分支（或标签）再读取。
    """

    def __init__(
        self,
        process: ProcessService,
        root_dir: Path,
        repository_name: str,
        branch_name: str = DEFAULT_BRANCH,
        created_ticks: str = "0",
        workspace_name: str | None = None,
        workspace_prefix: str = "BuildMaster",
    ) -> None:
        self._process = process
        self._root_dir = root_dir
        self._repository_name = repository_name
        self._branch_name = branch_name
        self._created_ticks = created_ticks
        self._workspace_name = workspace_name
        self._workspace_prefix = workspace_prefix

    @property
    def repository_name(self) -> str:
        return self._repository_name

    @property
    def branch_name(self) -> str:
        return self._branch_name

    def workspace_path(self) -> Path:
        if self._workspace_name:
            self._validate_segment(self._workspace_name, "workspace name")
            return (self._root_dir / self._workspace_name).resolve()

        if not self._repository_name:
            raise ProviderConfigurationError("repository name or workspace name is required")
        self._validate_segment(self._repository_name, "repository name")
        return (self._root_dir / f"{self._repository_name}_{self._created_ticks}").resolve()

    def registration_name(self) -> str:
        if self._workspace_name:
            return self._workspace_name
        return f"{self._workspace_prefix}_{self._repository_name}_{self._created_ticks}"

    def find_workspace(self) -> WorkspaceInfo | None:
        """返回已注册的工作区；尚未注册时返回 None（正常情况，不抛异常）。"""
        path = self.workspace_path()
        if not path.is_dir():
            return None

        try:
            lines = self._process.run(path, "wi")
        except ExternalToolError as exc:
            # 目录不在任何工作区内时 `wi` 以非零退出码结束。
            logger.debug("No workspace at %s: %s", path, exc.message)
            return None

        if not lines or _NOT_IN_WORKSPACE in lines[0].lower():
            return None
        return WorkspaceInfo(location=path, name=self.registration_name())

    def ensure_workspace(self) -> WorkspaceInfo:
        existing = self.find_workspace()
        if existing is not None:
            return existing

        path = self.workspace_path()
        name = self.registration_name()
        self._root_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Registering workspace %s at %s", name, path)
        self._process.run(None, "mkwk", name, str(path))
        if not path.is_dir():
            raise WorkspaceUnavailableError(name, f"{path} was not created by mkwk")

        return WorkspaceInfo(location=path, name=name)

    def switch_branch(self, workspace: WorkspaceInfo) -> None:
        self._process.run(
            workspace.location,
            "stb",
            self._branch_name,
            self._repository_option(),
        )

    def switch_to_label(self, workspace: WorkspaceInfo, label: str) -> None:
        self._process.run(
            workspace.location,
            "stb",
            f"--label={label}",
            self._repository_option(),
        )

    def update(self, workspace: WorkspaceInfo) -> None:
        self._process.run(workspace.location, "upd", ".")

    def prepare(self, update: bool = True) -> WorkspaceInfo:
        workspace = self.ensure_workspace()
        self.switch_branch(workspace)
        if update:
            self.update(workspace)
        return workspace

    def _repository_option(self) -> str | None:
        if not self._repository_name:
            return None
        return f"--repository={self._repository_name}"

    def _validate_segment(self, value: str, label: str) -> None:
        if value in {".", ".."} or "/" in value or "\\" in value:
            raise ProviderConfigurationError(f"{label} must be a single path segment: {value}")


def build_workspace_service(process: ProcessService) -> WorkspaceService:
    return WorkspaceService(
        process,
        settings.workspace_root_dir,
        repository_name=settings.repository_name,
        branch_name=settings.branch_name,
        created_ticks=settings.created_ticks,
        workspace_name=settings.workspace_name,
        workspace_prefix=settings.workspace_prefix,
    )
