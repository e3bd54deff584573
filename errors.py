from __future__ import annotations

from tui_base import AppError, ErrorKind, ErrorSeverity


class DashboardError(Exception):
    kind: ErrorKind = ErrorKind.BACKEND_UNAVAILABLE
    severity: ErrorSeverity = ErrorSeverity.ERROR

    def to_app_error(self) -> AppError:
        return AppError(str(self), self.severity, self.kind)


class BackendUnavailable(DashboardError):
    kind = ErrorKind.BACKEND_UNAVAILABLE


class AuthRejected(DashboardError):
    kind = ErrorKind.AUTH_REJECTED


class MalformedConfig(DashboardError):
    kind = ErrorKind.MALFORMED_CONFIG
    severity = ErrorSeverity.WARNING


class InvalidRulesEdit(DashboardError):
    kind = ErrorKind.INVALID_RULES_EDIT


class CommandSpawnFailed(DashboardError):
    kind = ErrorKind.COMMAND_SPAWN_FAILED


def to_app_error(exc: BaseException) -> AppError:
    if isinstance(exc, DashboardError):
        return exc.to_app_error()
    return AppError(f"{exc.__class__.__name__}: {exc}", ErrorSeverity.ERROR, ErrorKind.BACKEND_UNAVAILABLE)
