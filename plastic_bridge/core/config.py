import os
from dataclasses import dataclass
from pathlib import Path


def _load_local_dotenv() -> None:
    """
    在启动时加载项目根目录 `.env` 到进程环境变量。

    规则：
    1) 仅在当前环境变量不存在时写入，避免覆盖显式注入值。
    2) 支持 `KEY=VALUE` 与 `export KEY=VALUE` 写法。
    3) 忽略空行与注释行（以 `#` 开头）。
    """
    env_file = Path(__file__).resolve().parents[2] / ".env"
    if not env_file.exists():
        return

    for raw_line in env_file.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if not key:
            continue
        os.environ.setdefault(key, value)


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    workspace_root_dir: Path
    cm_executable: str
    repository_name: str
    workspace_name: str | None
    branch_name: str
    created_ticks: str
    workspace_prefix: str
    command_timeout: float | None


DEFAULT_BRANCH = "br:/main"


def _resolve_data_dir() -> Path:
    raw_path = os.getenv("DATA_DIR", "./data")
    data_dir = Path(raw_path).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def _resolve_workspace_root(data_dir: Path) -> Path:
    root_path = (data_dir / "PlasticWorkspaces").resolve()
    root_path.mkdir(parents=True, exist_ok=True)
    return root_path


def _resolve_optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def _resolve_command_timeout() -> float | None:
    raw = _resolve_optional("PLASTIC_COMMAND_TIMEOUT")
    if raw is None:
        return None
    try:
        timeout = float(raw)
    except ValueError as exc:
        raise ValueError(f"PLASTIC_COMMAND_TIMEOUT must be a number: {raw!r}") from exc
    # 0 表示不限时，与历史行为一致。
    return timeout if timeout > 0 else None


_load_local_dotenv()
_data_dir = _resolve_data_dir()
settings = Settings(
    data_dir=_data_dir,
    workspace_root_dir=_resolve_workspace_root(_data_dir),
    cm_executable=os.getenv("PLASTIC_CM_PATH", "cm").strip() or "cm",
    repository_name=os.getenv("PLASTIC_REPOSITORY", "").strip(),
    workspace_name=_resolve_optional("PLASTIC_WORKSPACE_NAME"),
    branch_name=_resolve_optional("PLASTIC_BRANCH") or DEFAULT_BRANCH,
    created_ticks=os.getenv("PLASTIC_CREATED_TICKS", "0").strip() or "0",
    workspace_prefix=_resolve_optional("PLASTIC_WORKSPACE_PREFIX") or "BuildMaster",
    command_timeout=_resolve_command_timeout(),
)
