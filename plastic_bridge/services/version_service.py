from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
import os
import re
import shutil
import threading

from plastic_bridge.core.errors import AppError, MalformedOutputError

logger = logging.getLogger(__name__)

FALLBACK_VERSION = "4.0.0.0"

_VERSION_PATTERN = re.compile(r"^\s*(\d+)(?:\.(\d+))?")


@dataclass(frozen=True)
class ToolVersion:
    major: int
    minor: int
    raw: str


def parse_tool_version(text: str) -> ToolVersion:
    match = _VERSION_PATTERN.match(text or "")
    if match is None:
        raise MalformedOutputError("version", text, "no leading version number")
    return ToolVersion(
        major=int(match.group(1)),
        minor=int(match.group(2) or 0),
        raw=text.strip(),
    )


class ToolVersionCache:
    """进程级缓存：可执行文件路径 -> cm 版本号。

    条目一直保留到 `clear()`；同一路径下的 cm 在进程生命周期内视为不变。
    """

    def __init__(self) -> None:
        self._versions: dict[str, str] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def get_version(self, executable: str, detect: Callable[[], list[str]]) -> str:
        key = self._cache_key(executable)
        cached = self._lookup(key)
        if cached is not None:
            return cached

        with self._lock_for(key):
            # 等锁期间可能已有其他调用方完成探测。
            cached = self._lookup(key)
            if cached is not None:
                return cached

            version = self._detect(key, detect)
            if version is None:
                return FALLBACK_VERSION
            with self._guard:
                self._versions[key] = version
            return version

    def clear(self) -> None:
        with self._guard:
            self._versions.clear()
            self._locks.clear()

    def _lookup(self, key: str) -> str | None:
        with self._guard:
            return self._versions.get(key)

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def _detect(self, key: str, detect: Callable[[], list[str]]) -> str | None:
        try:
            lines = detect()
            if not lines:
                raise MalformedOutputError("version", "", "no output")
            version = parse_tool_version(lines[0]).raw
        except AppError as exc:
            logger.warning(
                "Tool version detection failed for %s, assuming %s: %s",
                key,
                FALLBACK_VERSION,
                exc.message,
            )
            return None
        logger.info("Detected tool version %s for %s", version, key)
        return version

    def _cache_key(self, executable: str) -> str:
        resolved = shutil.which(executable)
        return os.path.abspath(resolved) if resolved else executable


tool_version_cache = ToolVersionCache()
