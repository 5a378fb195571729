from __future__ import annotations

import logging

from plastic_bridge.core.errors import AppError
from plastic_bridge.core.paths import normalize_repository_path
from plastic_bridge.services.process_service import ProcessService
from plastic_bridge.services.workspace_service import WorkspaceInfo, WorkspaceService

logger = logging.getLogger(__name__)


class LabelService:
    def __init__(self, process: ProcessService, workspace_service: WorkspaceService) -> None:
        self._process = process
        self._workspace_service = workspace_service

    def apply_label(self, workspace: WorkspaceInfo, label: str, repository_path: str | None) -> None:
        """更新工作区 -> 创建标签 -> 递归打标签。

        三步之间没有事务：最后一步失败时，`mklb` 创建的标签仍保留在服务器上。
        """
        normalized_label = (label or "").strip()
        if not normalized_label:
            raise AppError(
                code="INVALID_LABEL",
                message="Label must not be empty",
                status_code=400,
            )

        target = normalize_repository_path(repository_path) or "."

        self._workspace_service.update(workspace)
        self._process.run(workspace.location, "mklb", normalized_label)
        logger.info("Created label %s, applying to %s", normalized_label, target)
        self._process.run(
            workspace.location,
            "label",
            f"lb:{normalized_label}",
            "-R",
            target,
        )
