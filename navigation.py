"""Screen state machine.

MainList is the initial screen and the target of Esc from any other
screen. Keys are translated into Actions; the caller performs them.
User command bindings never shadow built-in keys: colliding bindings
are dropped when the config is loaded.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from config_store import MEMBER_CONTEXT, NETWORK_CONTEXT, CommandBinding
from keybindings import KEYS
from view_model import (
    ACTION_AUTHORIZE,
    ACTION_DEAUTHORIZE,
    ACTION_JOIN,
    ACTION_LEAVE,
    MemberView,
    NetworkView,
    ViewModel,
)


class ScreenKind(Enum):
    MAIN_LIST = "networks"
    MEMBER_LIST = "members"
    JSON_DETAIL = "detail"
    RULES_EDITOR = "rules"


@dataclass(frozen=True)
class Screen:
    kind: ScreenKind
    network_id: Optional[str] = None


MAIN_LIST = Screen(ScreenKind.MAIN_LIST)


class ActionKind(Enum):
    NONE = "none"
    QUIT = "quit"
    HELP = "help"
    BACK = "back"
    REFRESH = "refresh"
    RELOAD_CONFIG = "reload_config"
    OPEN_MEMBERS = "open_members"
    SHOW_JSON = "show_json"
    EDIT_RULES = "edit_rules"
    MUTATE = "mutate"
    RENAME = "rename"
    DELETE = "delete"
    FORGET = "forget"
    JOIN_BY_ID = "join_by_id"
    BOOKMARK_JOINED = "bookmark_joined"
    TOGGLE_FILTER = "toggle_filter"
    RUN_COMMAND = "run_command"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    network_id: Optional[str] = None
    member_id: Optional[str] = None
    mutation: Optional[str] = None
    binding: Optional[CommandBinding] = None


NO_ACTION = Action(ActionKind.NONE)

BindingLookup = Callable[[str, int], Optional[CommandBinding]]


def _no_bindings(context: str, key: int) -> Optional[CommandBinding]:
    return None


class Navigator:
    def __init__(self, view: ViewModel, binding_lookup: BindingLookup = _no_bindings, page_size: int = 10) -> None:
        self.view = view
        self.binding_lookup = binding_lookup
        self.page_size = page_size
        self.screen: Screen = MAIN_LIST
        self.main_cursor = 0
        self.member_cursor = 0
        self.detail_offset = 0
        self.detail_rows = 0
        self._return_to: Screen = MAIN_LIST

    # selection

    def current_list(self) -> List[Any]:
        if self.screen.kind == ScreenKind.MAIN_LIST:
            return self.view.visible_networks()
        if self.screen.kind == ScreenKind.MEMBER_LIST and self.screen.network_id:
            return list(self.view.members(self.screen.network_id))
        return []

    def selected_network(self) -> Optional[NetworkView]:
        if self.screen.network_id is not None:
            return self.view.get(self.screen.network_id)
        networks = self.view.visible_networks()
        if not networks:
            return None
        return networks[min(self.main_cursor, len(networks) - 1)]

    def selected_member(self) -> Optional[MemberView]:
        if self.screen.kind != ScreenKind.MEMBER_LIST or not self.screen.network_id:
            return None
        members = self.view.members(self.screen.network_id)
        if not members:
            return None
        return members[min(self.member_cursor, len(members) - 1)]

    def select_network(self, network_id: str) -> None:
        for idx, view in enumerate(self.view.visible_networks()):
            if view.network_id == network_id:
                self.main_cursor = idx
                return

    def clamp(self) -> None:
        """Pull cursors back inside their lists; leave screens whose network is gone."""
        if self.screen.network_id is not None and not self.view.is_bookmarked(self.screen.network_id):
            self.screen = MAIN_LIST
        networks = len(self.view.visible_networks())
        self.main_cursor = max(0, min(self.main_cursor, networks - 1))
        if self.screen.kind == ScreenKind.MEMBER_LIST and self.screen.network_id:
            members = len(self.view.members(self.screen.network_id))
            self.member_cursor = max(0, min(self.member_cursor, members - 1))

    # transitions

    def back(self) -> None:
        if self.screen.network_id is not None:
            self.select_network(self.screen.network_id)
        self.screen = MAIN_LIST
        self.clamp()

    def open_members(self, network_id: str) -> None:
        self.screen = Screen(ScreenKind.MEMBER_LIST, network_id)
        self.member_cursor = 0

    def open_detail(self, network_id: str) -> None:
        self.screen = Screen(ScreenKind.JSON_DETAIL, network_id)
        self.detail_offset = 0

    def enter_rules_editor(self, network_id: str) -> None:
        self._return_to = self.screen
        self.screen = Screen(ScreenKind.RULES_EDITOR, network_id)

    def leave_rules_editor(self) -> None:
        self.screen = self._return_to
        self._return_to = MAIN_LIST
        self.clamp()

    def set_viewport(self, rows: int) -> None:
        """Record how many body rows the screen shows; list pages leave one for the header."""
        self.detail_rows = max(1, rows)
        self.page_size = max(1, rows - 1)
        self.detail_offset = min(self.detail_offset, self._max_detail_offset())

    def detail_lines(self) -> List[str]:
        view = self.view.get(self.screen.network_id or "")
        if view is None:
            return []
        return json.dumps(view.detail(), indent=2, sort_keys=True).splitlines()

    def _max_detail_offset(self) -> int:
        return max(0, len(self.detail_lines()) - self.detail_rows)

    def _move(self, delta: int) -> None:
        if self.screen.kind == ScreenKind.JSON_DETAIL:
            self.detail_offset = max(0, min(self._max_detail_offset(), self.detail_offset + delta))
            return
        total = len(self.current_list())
        if total == 0:
            return
        if self.screen.kind == ScreenKind.MAIN_LIST:
            self.main_cursor = max(0, min(total - 1, self.main_cursor + delta))
        elif self.screen.kind == ScreenKind.MEMBER_LIST:
            self.member_cursor = max(0, min(total - 1, self.member_cursor + delta))

    def _navigation_key(self, key: int) -> bool:
        big = 1 << 30
        moves = (
            (KEYS.NAV_UP, -1),
            (KEYS.NAV_DOWN, 1),
            (KEYS.PAGE_UP, -self.page_size),
            (KEYS.PAGE_DOWN, self.page_size),
            (KEYS.HOME, -big),
            (KEYS.END, big),
        )
        for keys, delta in moves:
            if key in keys:
                self._move(delta)
                return True
        return False

    def handle_key(self, key: int) -> Action:
        if key in KEYS.QUIT:
            return Action(ActionKind.QUIT)
        if key in KEYS.HELP:
            return Action(ActionKind.HELP)
        if key in KEYS.RELOAD_CONFIG:
            return Action(ActionKind.RELOAD_CONFIG)
        if key in KEYS.BACK:
            self.back()
            return Action(ActionKind.BACK)
        if self._navigation_key(key):
            return NO_ACTION

        kind = self.screen.kind
        if kind == ScreenKind.MAIN_LIST:
            return self._main_list_key(key)
        if kind == ScreenKind.MEMBER_LIST:
            return self._member_list_key(key)
        return NO_ACTION

    def _main_list_key(self, key: int) -> Action:
        if key in KEYS.JOIN_BY_ID:
            return Action(ActionKind.JOIN_BY_ID)
        if key in KEYS.BOOKMARK_JOINED:
            return Action(ActionKind.BOOKMARK_JOINED)
        if key in KEYS.TOGGLE_FILTER:
            return Action(ActionKind.TOGGLE_FILTER)
        if key in KEYS.REFRESH:
            return Action(ActionKind.REFRESH)

        network = self.selected_network()
        if network is None:
            return NO_ACTION
        nid = network.network_id

        binding = self.binding_lookup(NETWORK_CONTEXT, key)
        if binding is not None:
            return Action(ActionKind.RUN_COMMAND, network_id=nid, binding=binding)
        if key in KEYS.CONFIRM:
            self.open_members(nid)
            return Action(ActionKind.OPEN_MEMBERS, network_id=nid)
        if key in KEYS.SHOW_JSON:
            self.open_detail(nid)
            return Action(ActionKind.SHOW_JSON, network_id=nid)
        if key in KEYS.EDIT_RULES:
            return Action(ActionKind.EDIT_RULES, network_id=nid)
        if key in KEYS.JOIN:
            return Action(ActionKind.MUTATE, network_id=nid, mutation=ACTION_JOIN)
        if key in KEYS.LEAVE:
            return Action(ActionKind.MUTATE, network_id=nid, mutation=ACTION_LEAVE)
        if key in KEYS.FORGET:
            return Action(ActionKind.FORGET, network_id=nid)
        return NO_ACTION

    def _member_list_key(self, key: int) -> Action:
        nid = self.screen.network_id
        if key in KEYS.REFRESH:
            return Action(ActionKind.REFRESH, network_id=nid)
        if key in KEYS.SHOW_JSON and nid:
            self.open_detail(nid)
            return Action(ActionKind.SHOW_JSON, network_id=nid)

        member = self.selected_member()
        if member is None:
            return NO_ACTION
        mid = member.member_id

        binding = self.binding_lookup(MEMBER_CONTEXT, key)
        if binding is not None:
            return Action(ActionKind.RUN_COMMAND, network_id=nid, member_id=mid, binding=binding)
        if key in KEYS.RENAME:
            return Action(ActionKind.RENAME, network_id=nid, member_id=mid)
        if key in KEYS.AUTHORIZE:
            return Action(ActionKind.MUTATE, network_id=nid, member_id=mid, mutation=ACTION_AUTHORIZE)
        if key in KEYS.DEAUTHORIZE:
            return Action(ActionKind.MUTATE, network_id=nid, member_id=mid, mutation=ACTION_DEAUTHORIZE)
        if key in KEYS.DELETE:
            return Action(ActionKind.DELETE, network_id=nid, member_id=mid)
        return NO_ACTION
