from __future__ import annotations

import getpass
import logging
import os
from pathlib import Path
import queue
import subprocess
import threading
import time

from plastic_bridge.core.errors import ExternalToolError, ExternalToolTimeoutError

logger = logging.getLogger(__name__)

_PROFILE_ENV_VAR = "USERPROFILE" if os.name == "nt" else "HOME"
_EOF = None


def quote_argument(arg: str) -> str:
    return '"' + arg.replace('"', '\\"') + '"'


def format_command_line(command: str, args: list[str]) -> str:
    return " ".join([command, *(quote_argument(arg) for arg in args)])


def resolve_profile_path() -> str:
    """
    返回当前进程账号的真实用户目录。

    服务账号经常从环境变量继承默认用户的 profile，
    因此这里直接按账号本身推导路径。
    """
    if os.name == "nt":
        app_data = os.environ.get("APPDATA")
        if app_data:
            # <users>\<name>\AppData\Roaming
            users_dir = Path(app_data).resolve().parents[2]
            return str(users_dir / getpass.getuser())
        return os.path.expanduser("~")

    import pwd

    try:
        return pwd.getpwuid(os.getuid()).pw_dir
    except KeyError:
        # 容器内的 uid 可能没有 passwd 记录。
        return os.path.expanduser("~")


class ProcessService:
    """执行 cm 命令行并收集非空输出行。"""

    def __init__(self, executable: str, timeout: float | None = None) -> None:
        self._executable = executable
        self._timeout = timeout

    @property
    def executable(self) -> str:
        return self._executable

    def run(self, working_dir: Path | None, command: str, *args: str | None) -> list[str]:
        arg_list = [arg for arg in args if arg is not None]
        argv = [self._executable, command, *arg_list]
        rendered = format_command_line(command, arg_list)
        logger.info(
            "Executing %s %s cwd=%s",
            self._executable,
            rendered,
            working_dir or "-",
        )

        try:
            process = subprocess.Popen(
                argv,
                cwd=str(working_dir) if working_dir else None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=self._process_env(),
            )
        except OSError as exc:
            raise ExternalToolError(rendered, f"failed to start {self._executable}: {exc}") from exc

        lines = self._collect_lines(process, rendered)
        exit_code = process.wait()
        if exit_code != 0:
            raise ExternalToolError(rendered, "".join(lines), exit_code)
        return lines

    def _collect_lines(self, process: subprocess.Popen, rendered: str) -> list[str]:
        pending: queue.Queue[str | None] = queue.Queue()

        def _pump() -> None:
            try:
                for raw_line in process.stdout:
                    pending.put(raw_line)
            finally:
                process.stdout.close()
                pending.put(_EOF)

        reader = threading.Thread(target=_pump, daemon=True)
        reader.start()

        deadline = time.monotonic() + self._timeout if self._timeout else None
        lines: list[str] = []
        while True:
            wait = None if deadline is None else max(deadline - time.monotonic(), 0.0)
            try:
                item = pending.get(timeout=wait)
            except queue.Empty:
                process.kill()
                process.wait()
                reader.join(timeout=1)
                raise ExternalToolTimeoutError(rendered, "".join(lines), self._timeout)
            if item is _EOF:
                break
            line = item.rstrip("\r\n")
            if line:
                lines.append(line)

        reader.join()
        return lines

    def _process_env(self) -> dict[str, str]:
        env = os.environ.copy()
        env[_PROFILE_ENV_VAR] = resolve_profile_path()
        return env
