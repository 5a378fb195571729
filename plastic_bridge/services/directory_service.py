from __future__ import annotations

from dataclasses import dataclass, field
import logging

from plastic_bridge.core.paths import display_name, join_repository_path
from plastic_bridge.services.process_service import ProcessService
from plastic_bridge.services.workspace_service import WorkspaceInfo

logger = logging.getLogger(__name__)

LIST_FORMAT = "--format={2}|{5}"
_DIR_KIND = "dir"
_SELF_ENTRY = "."


@dataclass(frozen=True)
class FileEntry:
    name: str
    path: str


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    path: str
    subdirectories: tuple[DirectoryEntry, ...] = field(default_factory=tuple)
    files: tuple[FileEntry, ...] = field(default_factory=tuple)


def parse_directory_listing(lines: list[str], repository_path: str | None) -> DirectoryEntry:
    """把 `kind|name` 行解析为一层目录树。

    子目录的 children 保持为空，需要更深层级时由调用方再次列目录。
    """
    source_path = repository_path or ""
    directories: list[DirectoryEntry] = []
    files: list[FileEntry] = []

    for line in lines:
        components = line.split("|")
        if len(components) < 2:
            logger.warning("Skipping malformed listing line for %r: %r", source_path, line)
            continue

        kind, name = components[0], components[1]
        if name == _SELF_ENTRY:
            continue

        child_path = join_repository_path(source_path, name)
        if kind == _DIR_KIND:
            directories.append(DirectoryEntry(name=name, path=child_path))
        else:
            files.append(FileEntry(name=name, path=child_path))

    return DirectoryEntry(
        name=display_name(source_path),
        path=source_path,
        subdirectories=tuple(directories),
        files=tuple(files),
    )


class DirectoryService:
    def __init__(self, process: ProcessService) -> None:
        self._process = process

    def list_directory(self, workspace: WorkspaceInfo, repository_path: str | None) -> DirectoryEntry:
        lines = self._process.run(
            workspace.location,
            "dir",
            repository_path or ".",
            LIST_FORMAT,
        )
        return parse_directory_listing(lines, repository_path)
