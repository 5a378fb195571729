from __future__ import annotations

import logging
from pathlib import Path

from plastic_bridge.core.config import DEFAULT_BRANCH
from plastic_bridge.core.errors import InvalidRepositoryPathError, MalformedOutputError
from plastic_bridge.core.paths import (
    normalize_repository_path,
    to_local_path,
    to_repository_path,
)
from plastic_bridge.services.process_service import ProcessService
from plastic_bridge.services.version_service import (
    ToolVersion,
    ToolVersionCache,
    parse_tool_version,
    tool_version_cache,
)
from plastic_bridge.services.workspace_service import WorkspaceInfo

logger = logging.getLogger(__name__)

FINGERPRINT_SIZE = 8

_TIP_CHANGESET_QUERY = (
    "select top 1 changeset.iobjid from changeset,branch "
    "where changeset.fidbranch=branch.iobjid and branch.sname='{branch}' "
    "order by changeset.iobjid desc"
)

# revisionnumber = -1 是 checkout 而不是 check-in，需要排除。
_ITEM_REVISIONS_CHECKINS_ONLY = (
    "select max(revisions.objectid) as maxrevision, revisions.itemid "
    "from revisions,branch where revisions.branchid = branch.iobjid "
    "and branch.sname='{branch}' and revisions.revisionnumber >= 0 "
    "group by revisions.itemid order by max(revisions.objectid) desc"
)

_ITEM_REVISIONS = (
    "select max(revisions.objectid) as maxrevision, revisions.itemid "
    "from revisions,branch where revisions.branchid = branch.iobjid "
    "and branch.sname='{branch}' "
    "group by revisions.itemid order by max(revisions.objectid) desc"
)

# 主版本号 -> 单项修订查询；未列出的版本统一使用 _ITEM_REVISIONS。
_ITEM_REVISION_QUERIES: tuple[tuple[range, str], ...] = (
    (range(3, 4), _ITEM_REVISIONS_CHECKINS_ONLY),
)


def branch_short_name(branch_spec: str) -> str:
    """`br:/main/task-1` -> `task-1`."""
    value = branch_spec.strip()
    if value.startswith("br:"):
        value = value[len("br:") :]
    return value.rstrip("/").rsplit("/", 1)[-1]


def select_item_revision_query(version: ToolVersion) -> str:
    for majors, query in _ITEM_REVISION_QUERIES:
        if version.major in majors:
            return query
    return _ITEM_REVISIONS


def encode_fingerprint(identifier: int) -> bytes:
    return identifier.to_bytes(FINGERPRINT_SIZE, "little", signed=True)


def _parse_identifier(text: str, line: str) -> int:
    try:
        return int(text)
    except ValueError as exc:
        raise MalformedOutputError("query", line, "identifier is not an integer") from exc


def _solved_repository_path(root: Path, solved_path: str) -> str | None:
    """把 `--solvepath` 给出的本地路径换回仓库路径；不在工作区内的返回 None。"""
    try:
        return to_repository_path(root, Path(solved_path.strip()))
    except InvalidRepositoryPathError:
        return None


class RevisionService:
    """计算分支最新 changeset，或某个子路径下最新修订的指纹。"""

    def __init__(
        self,
        process: ProcessService,
        branch_name: str = DEFAULT_BRANCH,
        version_cache: ToolVersionCache | None = None,
    ) -> None:
        self._process = process
        self._branch = branch_short_name(branch_name)
        self._version_cache = version_cache or tool_version_cache

    def tool_version(self) -> ToolVersion:
        raw = self._version_cache.get_version(
            self._process.executable,
            lambda: self._process.run(None, "version"),
        )
        return parse_tool_version(raw)

    def get_fingerprint(self, workspace: WorkspaceInfo, repository_path: str | None = None) -> bytes | None:
        if not normalize_repository_path(repository_path):
            return self._tip_changeset_fingerprint(workspace)
        return self._path_fingerprint(workspace, repository_path)

    def _tip_changeset_fingerprint(self, workspace: WorkspaceInfo) -> bytes | None:
        lines = self._process.run(
            workspace.location,
            "query",
            _TIP_CHANGESET_QUERY.format(branch=self._branch),
        )
        # 第 0 行是结果表头。
        if len(lines) < 2:
            return None
        last = lines[-1]
        return encode_fingerprint(_parse_identifier(last.strip(), last))

    def _path_fingerprint(self, workspace: WorkspaceInfo, repository_path: str) -> bytes | None:
        version = self.tool_version()
        query = select_item_revision_query(version).format(branch=self._branch)
        root = workspace.location
        target = to_repository_path(root, to_local_path(root, repository_path)).lower()

        lines = self._process.run(
            workspace.location,
            "query",
            query,
            "--solvepath=itemid",
        )
        # 按 revision id 降序排列，第一个命中即最新修订。
        for line in lines[1:]:
            parts = line.strip().split(None, 1)
            if len(parts) < 2:
                raise MalformedOutputError("query", line, "expected '<id> <path>'")
            identifier_text, solved_path = parts
            candidate = _solved_repository_path(root, solved_path)
            if candidate is None:
                continue
            candidate = candidate.lower()
            if candidate == target or candidate.startswith(target + "/"):
                return encode_fingerprint(_parse_identifier(identifier_text, line))

        logger.info("No revision found for %r on %s", repository_path, self._branch)
        return None
