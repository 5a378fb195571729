from __future__ import annotations

import logging
from pathlib import Path
import shutil

from plastic_bridge.core.config import settings
from plastic_bridge.core.errors import NotFoundError
from plastic_bridge.core.paths import to_local_path
from plastic_bridge.services.directory_service import DirectoryEntry, DirectoryService
from plastic_bridge.services.label_service import LabelService
from plastic_bridge.services.process_service import ProcessService
from plastic_bridge.services.revision_service import RevisionService
from plastic_bridge.services.version_service import ToolVersionCache
from plastic_bridge.services.workspace_service import (
    WorkspaceService,
    build_workspace_service,
)

logger = logging.getLogger(__name__)

# 每个工作区内 cm 自己的元数据目录，导出时跳过。
_WORKSPACE_METADATA = ".plastic"


class PlasticProvider:
    """通过 `cm` 命令行获取文件、浏览目录、打标签。"""

    def __init__(
        self,
        process: ProcessService,
        workspace_service: WorkspaceService,
        version_cache: ToolVersionCache | None = None,
    ) -> None:
        self._process = process
        self._workspaces = workspace_service
        self._directories = DirectoryService(process)
        self._revisions = RevisionService(
            process,
            branch_name=workspace_service.branch_name,
            version_cache=version_cache,
        )
        self._labels = LabelService(process, workspace_service)

    def list_repositories(self) -> list[str]:
        lines = self._process.run(None, "lrep", "--format={1}")
        return sorted(line.strip() for line in lines if line.strip())

    def validate_connection(self) -> None:
        self._process.run(None, "cc")

    def get_latest(self, source_path: str | None, target_path: Path) -> None:
        workspace = self._workspaces.prepare()
        self._copy_out(workspace.location, source_path, target_path)

    def get_labeled(self, label: str, source_path: str | None, target_path: Path) -> None:
        workspace = self._workspaces.ensure_workspace()
        self._workspaces.switch_to_label(workspace, label)
        self._workspaces.update(workspace)
        self._copy_out(workspace.location, source_path, target_path)

    def get_directory_entry(self, source_path: str | None) -> DirectoryEntry:
        workspace = self._workspaces.prepare()
        return self._directories.list_directory(workspace, source_path)

    def get_file_contents(self, file_path: str) -> bytes:
        workspace = self._workspaces.prepare()
        local_path = to_local_path(workspace.location, file_path)
        if not local_path.is_file():
            raise NotFoundError("file", file_path)
        return local_path.read_bytes()

    def apply_label(self, label: str, source_path: str | None) -> None:
        workspace = self._workspaces.ensure_workspace()
        self._workspaces.switch_branch(workspace)
        self._labels.apply_label(workspace, label, source_path)

    def get_current_revision(self, path: str | None) -> bytes | None:
        workspace = self._workspaces.prepare(update=False)
        return self._revisions.get_fingerprint(workspace, path)

    def _copy_out(self, root: Path, source_path: str | None, target_path: Path) -> None:
        source = to_local_path(root, source_path)
        if not source.exists():
            raise NotFoundError("path", source_path or "/")

        target_path.mkdir(parents=True, exist_ok=True)
        if source.is_file():
            shutil.copy2(source, target_path / source.name)
        else:
            shutil.copytree(
                source,
                target_path,
                dirs_exist_ok=True,
                ignore=shutil.ignore_patterns(_WORKSPACE_METADATA),
            )
        logger.info("Copied %s to %s", source, target_path)


def build_plastic_provider() -> PlasticProvider:
    process = ProcessService(settings.cm_executable, timeout=settings.command_timeout)
    return PlasticProvider(process, build_workspace_service(process))


plastic_provider = build_plastic_provider()
