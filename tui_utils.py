#!/usr/bin/env python3
"""Curses helpers: modal dialogs and the terminal hand-off guard."""
from __future__ import annotations

import curses
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from keybindings import KEYS

logger = logging.getLogger(__name__)


@dataclass
class LineEditResult:
    value: str
    accepted: bool


def _safe_curs_set(visibility: int) -> None:
    try:
        curses.curs_set(visibility)
    except curses.error:
        pass


@contextmanager
def suspended_terminal(stdscr: Optional["curses._CursesWindow"]) -> Iterator[None]:
    """Hand the real terminal to a child process for the duration of the block.

    Cooked mode is restored on entry. On every exit path the program mode
    is re-acquired and the screen is cleared so the next draw repaints it.
    """
    curses.def_prog_mode()
    curses.endwin()
    try:
        yield
    finally:
        curses.reset_prog_mode()
        _safe_curs_set(0)
        if stdscr is not None:
            stdscr.clear()
            stdscr.refresh()
        curses.doupdate()
        logger.debug("terminal restored")


def _dialog_window(stdscr: "curses._CursesWindow", height: int, max_width: int) -> "curses._CursesWindow":
    h, w = stdscr.getmaxyx()
    if h < height or w < 20:
        raise RuntimeError("terminal too small")
    width = max(20, min(max_width, w))
    win = curses.newwin(height, width, max(0, (h - height) // 2), max(0, (w - width) // 2))
    win.keypad(True)
    win.border()
    return win


def edit_line_dialog(
    stdscr: "curses._CursesWindow",
    *,
    title: str,
    initial: str = "",
    instructions: str | None = None,
    max_width: int = 70,
    validate: Callable[[str], Optional[str]] | None = None,
) -> LineEditResult:
    """Edit a single line of text.

    - Enter: accept (re-prompts while ``validate`` returns an error)
    - Esc: cancel
    - Ctrl+U: clear
    """
    try:
        win = _dialog_window(stdscr, 6, max_width)
    except (RuntimeError, curses.error):
        return LineEditResult(value=initial, accepted=False)

    _, width = win.getmaxyx()
    field_width = max(1, width - 4)
    win.addnstr(1, 2, (title or "Enter value").strip(), field_width, curses.A_BOLD)
    help_line = instructions or "Enter: save  Esc: cancel  Ctrl+U: clear"
    field = win.derwin(1, field_width, 2, 2)
    buffer = list(initial or "")
    error = ""

    _safe_curs_set(1)
    try:
        while True:
            scroll = max(0, len(buffer) - field_width + 1)
            field.erase()
            field.addnstr(0, 0, "".join(buffer[scroll:]).ljust(field_width), field_width)
            win.move(3, 1)
            win.clrtoeol()
            win.addnstr(3, 2, error or help_line, field_width, curses.A_BOLD if error else curses.A_DIM)
            win.border()
            field.move(0, min(field_width - 1, len(buffer) - scroll))
            win.refresh()
            field.refresh()

            key = win.getch()
            if key in KEYS.CONFIRM:
                value = "".join(buffer).strip()
                error = (validate(value) if validate is not None else None) or ""
                if not error:
                    return LineEditResult(value=value, accepted=True)
                continue
            if key in KEYS.BACK:
                return LineEditResult(value=initial, accepted=False)
            if key in (curses.KEY_BACKSPACE, 127, 8):
                if buffer:
                    buffer.pop()
                continue
            if key == 21:  # Ctrl+U
                buffer.clear()
                continue
            if 0 <= key <= 255 and chr(key).isprintable():
                buffer.append(chr(key))
    finally:
        _safe_curs_set(0)


def confirm_dialog(stdscr: "curses._CursesWindow", question: str) -> bool:
    try:
        win = _dialog_window(stdscr, 5, max(30, len(question) + 6))
    except (RuntimeError, curses.error):
        return False
    _, width = win.getmaxyx()
    win.addnstr(1, 2, question, width - 4, curses.A_BOLD)
    win.addnstr(3, 2, "y: yes  any other key: no", width - 4, curses.A_DIM)
    win.refresh()
    return win.getch() in (ord("y"), ord("Y"))
