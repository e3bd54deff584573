from __future__ import annotations

import curses
import time
from typing import TYPE_CHECKING, List, Sequence, Tuple

from constants import LAYOUT, STATUS_DISCONNECTED, STATUS_OK, STATUS_REQUESTING, UI
from keybindings import HELP_TEXT
from navigation import ScreenKind
from traffic import format_usage
from tui_base import ErrorSeverity, draw_logs, draw_scrollbar, format_scroll_indicator, scroll_window

if TYPE_CHECKING:
    from dashboard import Dashboard

TITLE = "ZeroTier Terminal UI | h: help"
BODY_TOP = 2

COLOR_TITLE = 1
COLOR_GOOD = 2
COLOR_WARN = 3
COLOR_BAD = 4
COLOR_ACCENT = 5


def init_colors() -> None:
    try:
        curses.start_color()
        curses.use_default_colors()
    except curses.error:
        return
    curses.init_pair(COLOR_TITLE, curses.COLOR_CYAN, -1)
    curses.init_pair(COLOR_GOOD, curses.COLOR_GREEN, -1)
    curses.init_pair(COLOR_WARN, curses.COLOR_YELLOW, -1)
    curses.init_pair(COLOR_BAD, curses.COLOR_RED, -1)
    curses.init_pair(COLOR_ACCENT, curses.COLOR_MAGENTA, -1)


def _pair(number: int) -> int:
    try:
        return curses.color_pair(number)
    except curses.error:
        return 0


def status_attr(status: str) -> int:
    if status == STATUS_OK:
        return _pair(COLOR_GOOD)
    if status == STATUS_REQUESTING:
        return _pair(COLOR_WARN)
    return _pair(COLOR_BAD)


def _columns(rows: Sequence[Sequence[str]]) -> List[int]:
    widths: List[int] = []
    for row in rows:
        for idx, cell in enumerate(row):
            if idx >= len(widths):
                widths.append(0)
            widths[idx] = max(widths[idx], len(cell))
    return widths


def _age(last_online_ms: int | None) -> str:
    if not last_online_ms:
        return "never"
    seconds = max(0, int(time.time() - last_online_ms / 1000))
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
        if seconds >= size:
            return f"{seconds // size}{unit} ago"
    return f"{seconds}s ago"


def _put(win, y: int, x: int, text: str, width: int, attr: int = 0) -> None:
    if width <= x:
        return
    try:
        win.addnstr(y, x, text, max(1, width - x - 1), attr)
    except curses.error:
        pass


def _draw_table(
    stdscr,
    rows: Sequence[Tuple[Sequence[str], Sequence[int]]],
    cursor: int,
    top: int,
    height: int,
    width: int,
) -> None:
    if not rows:
        return
    widths = _columns([cells for cells, _ in rows])
    first = scroll_window(cursor, len(rows), height)
    for offset, (cells, attrs) in enumerate(rows[first : first + height]):
        idx = first + offset
        y = top + offset
        selected = idx == cursor
        x = 2
        _put(stdscr, y, 0, "> " if selected else "  ", width, curses.A_BOLD)
        for cell, cell_width, attr in zip(cells, widths, attrs):
            _put(stdscr, y, x, cell, width, attr | (curses.A_BOLD if selected else 0))
            x += cell_width + 2
    draw_scrollbar(
        stdscr,
        top=top,
        height=height,
        x=width - 1,
        first_index=first,
        total=len(rows),
        visible_rows=height,
        attr=curses.A_DIM,
    )


def draw_networks(stdscr, dash: "Dashboard", top: int, height: int, width: int) -> None:
    networks = dash.view.visible_networks()
    if not networks:
        _put(stdscr, top, 2, "No bookmarked networks. Press J to join one.", width, curses.A_DIM)
        return
    wide = width >= LAYOUT.WIDE_MIN_WIDTH
    rows = []
    for view in networks:
        status = view.display_status
        cells = [view.network_id, view.name or "-", status, ", ".join(view.addresses)]
        attrs = [_pair(COLOR_TITLE), curses.A_NORMAL, status_attr(status), _pair(COLOR_GOOD)]
        if wide:
            cells += [view.interface or "", format_usage(view.traffic) if view.connected else ""]
            attrs += [curses.A_DIM, _pair(COLOR_ACCENT)]
        if view.stale and status != STATUS_DISCONNECTED:
            attrs[2] |= curses.A_DIM
        rows.append((cells, attrs))
    _draw_table(stdscr, rows, dash.nav.main_cursor, top, height, width)


def draw_members(stdscr, dash: "Dashboard", top: int, height: int, width: int) -> None:
    network_id = dash.nav.screen.network_id or ""
    members = dash.view.members(network_id)
    if not members:
        message = "Loading members..." if not dash.view.has_members(network_id) else "No members."
        _put(stdscr, top, 2, message, width, curses.A_DIM)
        return
    rows = []
    for member in members:
        auth = "authorized" if member.authorized else "pending"
        cells = [member.member_id, member.name or "-", auth, ", ".join(member.addresses), _age(member.last_online_ms)]
        attrs = [
            _pair(COLOR_TITLE),
            curses.A_NORMAL,
            _pair(COLOR_GOOD) if member.authorized else _pair(COLOR_WARN),
            _pair(COLOR_GOOD),
            curses.A_DIM,
        ]
        rows.append((cells, attrs))
    _draw_table(stdscr, rows, dash.nav.member_cursor, top, height, width)


def draw_detail(stdscr, dash: "Dashboard", top: int, height: int, width: int) -> None:
    view = dash.view.get(dash.nav.screen.network_id or "")
    if view is None:
        return
    lines = dash.nav.detail_lines()
    offset = min(dash.nav.detail_offset, max(0, len(lines) - height))
    for idx, line in enumerate(lines[offset : offset + height]):
        _put(stdscr, top + idx, 2, line, width)
    indicator = format_scroll_indicator(offset, len(lines), height)
    if indicator:
        _put(stdscr, top - 1, max(2, width - len(indicator) - 2), indicator, width, curses.A_DIM)


def draw_help(stdscr, dash: "Dashboard", height: int, width: int) -> None:
    kind = dash.nav.screen.kind
    section = {ScreenKind.MEMBER_LIST: "member", ScreenKind.JSON_DETAIL: "detail"}.get(kind, "network")
    entries = list(HELP_TEXT[section])
    context = "member" if section == "member" else "network"
    for key, binding in sorted(dash.engine.bindings(context).items()):
        entries.append((key, binding.template))
    box_h = min(height - 2, len(entries) + 2)
    box_w = min(width - 4, max(40, width // 2))
    if box_h < 3 or box_w < 20:
        return
    try:
        win = curses.newwin(box_h, box_w, max(0, (height - box_h) // 2), max(0, (width - box_w) // 2))
    except curses.error:
        return
    win.erase()
    win.border()
    _put(win, 0, 2, " Help ", box_w, curses.A_BOLD)
    for idx, (key, text) in enumerate(entries[: box_h - 2], start=1):
        _put(win, idx, 2, f"{key:<10} {text}", box_w)
    win.noutrefresh()


def draw_status(stdscr, dash: "Dashboard", row: int, width: int) -> None:
    notice = dash.ui_state.notice
    if notice is None:
        pending = f"{len(dash.view.unbookmarked)} joined network(s) not bookmarked (B)" if dash.view.unbookmarked else ""
        _put(stdscr, row, 2, pending, width, curses.A_DIM)
        return
    attr = curses.A_BOLD
    if notice.severity in (ErrorSeverity.ERROR, ErrorSeverity.FATAL):
        attr |= _pair(COLOR_BAD)
    elif notice.severity == ErrorSeverity.WARNING:
        attr |= _pair(COLOR_WARN)
    _put(stdscr, row, 2, notice.message, width, attr)


def _log_rows(height: int) -> int:
    return UI.LOG_ROWS if height >= LAYOUT.MIN_HEIGHT + UI.LOG_ROWS else 0


def body_rows(height: int) -> int:
    """Rows available to the list or detail body on a screen ``height`` rows tall."""
    return max(1, height - BODY_TOP - 2 - _log_rows(height))


def draw_dashboard(stdscr, dash: "Dashboard") -> None:
    height, width = stdscr.getmaxyx()
    stdscr.erase()
    if height < LAYOUT.MIN_HEIGHT or width < LAYOUT.NARROW_MIN_WIDTH:
        _put(stdscr, 0, 0, "Terminal too small. Please enlarge.", width, curses.A_BOLD)
        stdscr.refresh()
        return

    screen = dash.nav.screen
    heading = {
        ScreenKind.MAIN_LIST: f"Networks [{dash.view.list_filter}]",
        ScreenKind.MEMBER_LIST: f"Members of {screen.network_id}",
        ScreenKind.JSON_DETAIL: f"Network {screen.network_id}",
        ScreenKind.RULES_EDITOR: f"Editing rules of {screen.network_id}",
    }[screen.kind]
    _put(stdscr, 0, 0, f"[ {TITLE} ] {heading}", width, _pair(COLOR_TITLE) | curses.A_BOLD)

    log_rows = _log_rows(height)
    body_top = BODY_TOP
    body_height = body_rows(height)

    if screen.kind == ScreenKind.MAIN_LIST:
        draw_networks(stdscr, dash, body_top, body_height, width)
    elif screen.kind == ScreenKind.MEMBER_LIST:
        draw_members(stdscr, dash, body_top, body_height, width)
    elif screen.kind == ScreenKind.JSON_DETAIL:
        draw_detail(stdscr, dash, body_top, body_height, width)

    draw_status(stdscr, dash, body_top + body_height, width)
    if log_rows:
        draw_logs(stdscr, dash.ui_state, height - log_rows, width, log_rows)
    stdscr.noutrefresh()
    if dash.ui_state.show_help:
        draw_help(stdscr, dash, height, width)
    curses.doupdate()
