from __future__ import annotations

import curses
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from constants import UI

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"


class ErrorKind(Enum):
    BACKEND_UNAVAILABLE = "backend unavailable"
    AUTH_REJECTED = "auth rejected"
    MALFORMED_CONFIG = "malformed config"
    INVALID_RULES_EDIT = "invalid rules edit"
    COMMAND_SPAWN_FAILED = "command spawn failed"


@dataclass
class AppError:
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    kind: ErrorKind | None = None
    recoverable: bool = True


@dataclass
class UIState:
    logs: deque = field(default_factory=lambda: deque(maxlen=UI.LOG_HISTORY))
    notice: AppError | None = None
    notice_at: float = 0.0
    show_help: bool = False

    def dismiss_notice(self) -> None:
        self.notice = None

    def expire_notice(self, now: float | None = None) -> None:
        if self.notice is None:
            return
        now = time.monotonic() if now is None else now
        if now - self.notice_at >= UI.NOTICE_TTL:
            self.notice = None


def append_log(ui_state: UIState, message: str) -> None:
    if not message:
        return
    timestamp = time.strftime("%H:%M:%S")
    ui_state.logs.append(f"[{timestamp}] {message}")
    logger.info(message)


def notify(ui_state: UIState, message: str) -> None:
    handle_error(AppError(message, ErrorSeverity.INFO), ui_state)


def handle_error(error: AppError, ui_state: UIState | None = None) -> str:
    """Record ``error`` as the current notice and in the log ring.

    Fatal, unrecoverable errors terminate the program; everything else
    is surfaced and left for the user to dismiss.
    """
    label = error.severity.value.upper()
    if error.kind is not None:
        message = f"[{label}] {error.kind.value}: {error.message}"
    else:
        message = f"[{label}] {error.message}"
    if error.severity in (ErrorSeverity.ERROR, ErrorSeverity.FATAL):
        logger.error(message)
    elif error.severity == ErrorSeverity.WARNING:
        logger.warning(message)
    if ui_state is not None:
        append_log(ui_state, message)
        ui_state.notice = error
        ui_state.notice_at = time.monotonic()
    if error.severity == ErrorSeverity.FATAL and not error.recoverable:
        raise SystemExit(1)
    return message


def format_scroll_indicator(first_index: int, total: int, visible_rows: int) -> str:
    if total <= 0 or visible_rows <= 0:
        return ""
    if total <= visible_rows:
        return ""
    current = max(1, min(total, first_index + 1))
    return f"[{current}/{total}]"


def scroll_window(cursor: int, total: int, visible_rows: int) -> int:
    """First row to draw so that ``cursor`` stays on screen."""
    if visible_rows <= 0 or total <= visible_rows:
        return 0
    first = max(0, cursor - visible_rows + 1)
    return min(first, total - visible_rows)


def draw_scrollbar(
    win: "curses._CursesWindow",
    *,
    top: int,
    height: int,
    x: int,
    first_index: int,
    total: int,
    visible_rows: int,
    attr: int,
) -> None:
    if total <= visible_rows or height <= 0:
        return
    max_scroll = max(1, total - visible_rows)
    thumb_pos = int((first_index / max_scroll) * (height - 1))
    for row in range(height):
        ch = "o" if row == thumb_pos else "|"
        try:
            win.addch(top + row, x, ch, attr)
        except curses.error:
            break


def draw_logs(
    stdscr: "curses._CursesWindow",
    ui_state: UIState,
    start_row: int,
    width: int,
    rows: int,
) -> int:
    logs = list(ui_state.logs)
    if not logs or rows <= 1:
        return 0
    stdscr.addnstr(start_row, 2, "Log", max(1, width - 4), curses.A_BOLD | curses.A_DIM)
    tail = logs[-(rows - 1):]
    for idx, line in enumerate(tail, start=1):
        stdscr.addnstr(start_row + idx, 2, line[: max(1, width - 4)], max(1, width - 4), curses.A_DIM)
    return 1 + len(tail)
