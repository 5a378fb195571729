"""仓库路径（`a/b/c.txt`）与工作区本地路径之间的转换。"""

from __future__ import annotations

from pathlib import Path

from plastic_bridge.core.errors import InvalidRepositoryPathError


def normalize_repository_path(path: str | None) -> str:
    """统一为正斜杠，去掉首尾分隔符。"""
    return (path or "").replace("\\", "/").strip("/")


def to_local_path(root: Path, repository_path: str | None) -> Path:
    normalized = normalize_repository_path(repository_path)
    if not normalized:
        return root

    segments = [segment for segment in normalized.split("/") if segment not in ("", ".")]
    if ".." in segments:
        raise InvalidRepositoryPathError(repository_path or "", "path escapes the workspace")

    return root.joinpath(*segments)


def to_repository_path(root: Path, local_path: Path) -> str:
    try:
        relative = local_path.resolve().relative_to(root.resolve())
    except ValueError as exc:
        raise InvalidRepositoryPathError(str(local_path), "path is outside the workspace") from exc
    text = relative.as_posix()
    return "" if text == "." else text


def join_repository_path(parent: str | None, child: str) -> str:
    if not parent:
        return child
    return parent.rstrip("/") + "/" + child


def display_name(repository_path: str | None) -> str:
    trimmed = (repository_path or "").rstrip("/")
    if "/" not in trimmed:
        return trimmed
    return trimmed[trimmed.rfind("/") + 1 :]
