from __future__ import annotations

import curses
from dataclasses import dataclass


@dataclass(frozen=True)
class Keybindings:
    QUIT = (ord("q"), ord("Q"))
    HELP = (ord("h"), ord("?"))
    REFRESH = (ord("r"),)
    RELOAD_CONFIG = (ord("R"),)
    CONFIRM = (curses.KEY_ENTER, ord("\n"), ord("\r"))
    BACK = (27,)  # Esc

    NAV_UP = (curses.KEY_UP,)
    NAV_DOWN = (curses.KEY_DOWN,)
    PAGE_UP = (curses.KEY_PPAGE,)
    PAGE_DOWN = (curses.KEY_NPAGE,)
    HOME = (curses.KEY_HOME,)
    END = (curses.KEY_END,)

    # network list
    JOIN = (ord("j"),)
    LEAVE = (ord("l"),)
    JOIN_BY_ID = (ord("J"),)
    FORGET = (ord("d"),)
    BOOKMARK_JOINED = (ord("B"),)
    TOGGLE_FILTER = (ord("t"),)
    SHOW_JSON = (ord("c"),)
    EDIT_RULES = (ord("e"),)

    # member list
    RENAME = (ord("n"),)
    AUTHORIZE = (ord("a"),)
    DEAUTHORIZE = (ord("u"),)
    DELETE = (ord("D"),)


KEYS = Keybindings()

_COMMON = KEYS.QUIT + KEYS.HELP + KEYS.REFRESH + KEYS.RELOAD_CONFIG + KEYS.SHOW_JSON

NETWORK_CONTEXT_KEYS = frozenset(
    chr(code)
    for code in _COMMON
    + KEYS.JOIN
    + KEYS.LEAVE
    + KEYS.JOIN_BY_ID
    + KEYS.FORGET
    + KEYS.BOOKMARK_JOINED
    + KEYS.TOGGLE_FILTER
    + KEYS.EDIT_RULES
)

MEMBER_CONTEXT_KEYS = frozenset(
    chr(code) for code in _COMMON + KEYS.RENAME + KEYS.AUTHORIZE + KEYS.DEAUTHORIZE + KEYS.DELETE
)

HELP_TEXT = {
    "network": [
        ("Up/Down", "navigate the list"),
        ("Enter", "show members of the network"),
        ("j / l", "join / leave the selected network"),
        ("J", "join a network by id (bookmarks it)"),
        ("d", "forget the bookmark (does not leave)"),
        ("B", "bookmark joined networks not in the list"),
        ("t", "toggle disconnected networks"),
        ("c", "show network JSON"),
        ("e", "edit network rules in $EDITOR"),
        ("r", "refresh now"),
        ("R", "reload config.json bindings"),
        ("q", "quit"),
    ],
    "member": [
        ("Up/Down", "navigate the list"),
        ("n", "rename member"),
        ("a / u", "authorize / deauthorize member"),
        ("D", "delete member"),
        ("c", "show network JSON"),
        ("r", "refresh now"),
        ("R", "reload config.json bindings"),
        ("Esc", "back to networks"),
        ("q", "quit"),
    ],
    "detail": [
        ("Up/Down", "scroll"),
        ("PgUp/PgDn", "scroll a page"),
        ("Esc", "back to networks"),
        ("q", "quit"),
    ],
}
