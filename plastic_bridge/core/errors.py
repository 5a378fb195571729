import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    def __init__(self, code: str, message: str, details: Any = None, status_code: int = 400):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code


class ExternalToolError(AppError):
    """外部命令以非零退出码结束。"""

    def __init__(self, command: str, output: str, exit_code: int | None = None):
        super().__init__(
            code="EXTERNAL_TOOL_ERROR",
            message=output or f"{command} failed",
            details={"command": command, "exit_code": exit_code, "output": output},
            status_code=502,
        )
        self.command = command
        self.output = output
        self.exit_code = exit_code


class ExternalToolTimeoutError(ExternalToolError):
    def __init__(self, command: str, output: str, timeout: float):
        super().__init__(command, output)
        self.code = "EXTERNAL_TOOL_TIMEOUT"
        self.message = f"{command} timed out after {timeout:g}s"
        self.details = {"command": command, "timeout": timeout, "output": output}
        self.status_code = 504
        self.timeout = timeout


class MalformedOutputError(AppError):
    def __init__(self, command: str, line: str, reason: str):
        super().__init__(
            code="MALFORMED_OUTPUT",
            message=f"Unexpected output from {command}: {reason}",
            details={"command": command, "line": line, "reason": reason},
            status_code=502,
        )


class WorkspaceUnavailableError(AppError):
    def __init__(self, workspace: str, reason: str):
        super().__init__(
            code="WORKSPACE_UNAVAILABLE",
            message="Workspace could not be prepared",
            details={"workspace": workspace, "reason": reason},
            status_code=503,
        )


class NotFoundError(AppError):
    def __init__(self, kind: str, name: str):
        super().__init__(
            code="NOT_FOUND",
            message=f"{kind} not found: {name}",
            details={"kind": kind, "name": name},
            status_code=404,
        )


class InvalidRepositoryPathError(AppError):
    def __init__(self, path: str, reason: str):
        super().__init__(
            code="INVALID_REPOSITORY_PATH",
            message="Repository path is invalid",
            details={"path": path, "reason": reason},
            status_code=400,
        )


class ProviderConfigurationError(AppError):
    def __init__(self, reason: str):
        super().__init__(
            code="PROVIDER_CONFIGURATION_ERROR",
            message="Provider is not configured",
            details={"reason": reason},
            status_code=500,
        )


def _error_payload(code: str, message: str, details: Any = None) -> dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
        }
    }


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        logger.warning(
            "AppError on %s %s: code=%s message=%s details=%s",
            request.method,
            request.url.path,
            exc.code,
            exc.message,
            exc.details,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(exc.code, exc.message, exc.details),
        )

    @app.exception_handler(Exception)
    async def _internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content=_error_payload(
                code="INTERNAL_SERVER_ERROR",
                message="Unexpected server error",
                details={"reason": str(exc)},
            ),
        )
