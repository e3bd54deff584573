"""Foreground controller: consumes the event channel and performs actions."""
from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from config_store import ConfigStore, LoadResult
from constants import UI
from display import body_rows
from errors import CommandSpawnFailed, InvalidRulesEdit
from events import (
    EventChannel,
    KeyPressed,
    MembersRefreshed,
    MutationCompleted,
    NetworksRefreshed,
    RulesLoaded,
    Tick,
    read_keys,
)
from navigation import Action, ActionKind, Navigator, ScreenKind
from process_utils import edit_json_in_editor
from refresh import RefreshScheduler
from templates import CommandEngine, MemberContext, NetworkContext, TemplateContext
from tui_base import UIState
from tui_utils import LineEditResult, confirm_dialog, edit_line_dialog, suspended_terminal
from validators import validate_network_id
from view_model import (
    ACTION_DELETE,
    ACTION_JOIN,
    ACTION_LEAVE,
    ACTION_RENAME,
    ACTION_SET_RULES,
    MEMBER_ACTIONS,
    ViewModel,
)

logger = logging.getLogger(__name__)

Prompt = Callable[..., LineEditResult]
Confirm = Callable[[str], bool]


class Dashboard:
    def __init__(
        self,
        store: ConfigStore,
        loaded: LoadResult,
        scheduler: RefreshScheduler,
        engine: CommandEngine,
        *,
        stdscr=None,
        prompt: Optional[Prompt] = None,
        confirm: Optional[Confirm] = None,
        rules_editor: Callable[[Any], Any] = edit_json_in_editor,
        guard=suspended_terminal,
    ) -> None:
        self.store = store
        self.scheduler = scheduler
        self.engine = engine
        self.stdscr = stdscr
        self.guard = guard
        self.rules_editor = rules_editor
        self.prompt = prompt or (lambda **kwargs: edit_line_dialog(self.stdscr, **kwargs))
        self.confirm = confirm or (lambda question: confirm_dialog(self.stdscr, question))
        self.view = ViewModel(
            loaded.settings.bookmarks,
            list_filter=loaded.settings.filter,
            ui_state=UIState(),
        )
        self.nav = Navigator(self.view, engine.binding_for)
        if loaded.settings.last_network:
            self.nav.select_network(loaded.settings.last_network)
        for warning in loaded.warnings:
            self.view.report(warning)
        self.running = True

    @property
    def ui_state(self) -> UIState:
        return self.view.ui_state

    def start(self) -> None:
        self.scheduler.refresh_networks()

    def stop(self) -> None:
        self.running = False
        selected = self.nav.selected_network()
        self._persist(last_network=selected.network_id if selected else None)
        self.scheduler.shutdown()

    # event loop

    def run(self, stdscr, channel: EventChannel, render: Callable[[Any, "Dashboard"], None]) -> None:
        self.start()
        while self.running:
            self.nav.set_viewport(body_rows(stdscr.getmaxyx()[0]))
            render(stdscr, self)
            read_keys(stdscr, channel, UI.INPUT_POLL_MS)
            self.process_pending(channel)

    def process_pending(self, channel: EventChannel) -> int:
        """Handle queued events in arrival order, including ones queued while handling."""
        handled = 0
        while self.running:
            event = channel.get()
            if event is None:
                break
            self.handle_event(event)
            handled += 1
        return handled

    def handle_event(self, event: Any) -> None:
        if isinstance(event, KeyPressed):
            self.handle_key(event.key)
        elif isinstance(event, Tick):
            self.on_tick()
        elif isinstance(event, NetworksRefreshed):
            self.scheduler.complete(event.job_key)
            if event.error is not None:
                self.view.report(event.error)
            else:
                self.view.merge_network_snapshot(event.snapshots, scope=event.scope, counters=event.counters)
        elif isinstance(event, MembersRefreshed):
            self.scheduler.complete(event.job_key)
            if event.error is not None:
                self.view.report(event.error)
            else:
                self.view.merge_member_snapshot(event.network_id, event.members)
        elif isinstance(event, MutationCompleted):
            self.scheduler.complete(event.job_key)
            self.on_mutation(event)
        elif isinstance(event, RulesLoaded):
            self.scheduler.complete(event.job_key)
            if event.error is not None:
                self.view.report(event.error)
            else:
                self.edit_rules(event.network_id, event.rules or [])
        self.nav.clamp()

    def on_tick(self) -> None:
        self.ui_state.expire_notice()
        self.scheduler.refresh_networks()
        if self.nav.screen.kind == ScreenKind.MEMBER_LIST and self.nav.screen.network_id:
            self.scheduler.refresh_members(self.nav.screen.network_id)

    def on_mutation(self, event: MutationCompleted) -> None:
        result = event.result
        self.view.apply_mutation_result(result)
        if not result.ok:
            return
        if result.action in (ACTION_JOIN, ACTION_LEAVE):
            self.scheduler.refresh_network(result.network_id)
        elif result.action in MEMBER_ACTIONS:
            self.scheduler.refresh_members(result.network_id)

    # keys and actions

    def handle_key(self, key: int) -> None:
        if self.ui_state.notice is not None:
            self.ui_state.dismiss_notice()
        action = self.nav.handle_key(key)
        self.perform(action)

    def perform(self, action: Action) -> None:
        kind = action.kind
        if kind == ActionKind.QUIT:
            self.stop()
        elif kind == ActionKind.HELP:
            self.ui_state.show_help = not self.ui_state.show_help
        elif kind == ActionKind.BACK:
            self.ui_state.show_help = False
        elif kind == ActionKind.REFRESH:
            self.scheduler.refresh_networks()
            if action.network_id:
                self.scheduler.refresh_members(action.network_id)
        elif kind == ActionKind.RELOAD_CONFIG:
            self.reload_config()
        elif kind == ActionKind.OPEN_MEMBERS and action.network_id:
            self.scheduler.refresh_members(action.network_id)
        elif kind == ActionKind.EDIT_RULES and action.network_id:
            if self.scheduler.load_rules(action.network_id):
                self.view.notice(f"Loading rules for {action.network_id}...")
        elif kind == ActionKind.MUTATE and action.network_id and action.mutation:
            self.scheduler.mutate(action.mutation, action.network_id, member_id=action.member_id)
        elif kind == ActionKind.RENAME:
            self.rename_member(action)
        elif kind == ActionKind.DELETE:
            self.delete_member(action)
        elif kind == ActionKind.FORGET and action.network_id:
            self.forget(action.network_id)
        elif kind == ActionKind.JOIN_BY_ID:
            self.join_by_id()
        elif kind == ActionKind.BOOKMARK_JOINED:
            self.bookmark_joined()
        elif kind == ActionKind.TOGGLE_FILTER:
            self.view.toggle_filter()
            self._persist()
        elif kind == ActionKind.RUN_COMMAND and action.binding is not None:
            context = self._template_context(action)
            if context is None:
                return
            result = self.engine.run(action.binding, context)
            self.view.report(result.to_notice())

    def _template_context(self, action: Action) -> Optional[TemplateContext]:
        network = self.view.get(action.network_id) if action.network_id else None
        if network is None:
            return None
        if action.member_id is None:
            return NetworkContext(network)
        member = next((m for m in self.view.members(network.network_id) if m.member_id == action.member_id), None)
        if member is None:
            return None
        return MemberContext(network, member)

    def reload_config(self) -> None:
        """Re-read config.json and replace the whole binding set."""
        config, warnings = self.store.reload_config()
        self.engine.reload(config)
        for warning in warnings:
            self.view.report(warning)
        if not warnings:
            self.view.notice(f"Reloaded {len(config.bindings)} command binding(s)")

    def forget(self, network_id: str) -> None:
        # forgetting only drops the bookmark; leaving is a separate action
        if self.view.forget(network_id):
            self._persist()
            self.view.notice(f"Forgot {network_id}")

    def join_by_id(self) -> None:
        def check(value: str) -> Optional[str]:
            return validate_network_id(value).error

        result = self.prompt(title="Join a network", initial="", validate=check)
        if not result.accepted:
            return
        network_id = validate_network_id(result.value).value
        if network_id is None:
            return
        if self.view.add_bookmark(network_id):
            self._persist()
        self.nav.select_network(network_id)
        self.scheduler.mutate(ACTION_JOIN, network_id)

    def bookmark_joined(self) -> None:
        added: List[str] = [nid for nid in self.view.unbookmarked if self.view.add_bookmark(nid)]
        if not added:
            self.view.notice("No unbookmarked joined networks")
            return
        self._persist()
        self.view.notice(f"Bookmarked {len(added)} network(s)")
        self.scheduler.refresh_networks()

    def rename_member(self, action: Action) -> None:
        member = self.nav.selected_member()
        if member is None or action.network_id is None:
            return
        result = self.prompt(title=f"Rename {member.member_id}", initial=member.name, validate=None)
        if result.accepted and result.value != member.name:
            self.scheduler.mutate(ACTION_RENAME, action.network_id, member_id=member.member_id, value=result.value)

    def delete_member(self, action: Action) -> None:
        if action.network_id is None or action.member_id is None:
            return
        if self.confirm(f"Delete member {action.member_id}?"):
            self.scheduler.mutate(ACTION_DELETE, action.network_id, member_id=action.member_id)

    def edit_rules(self, network_id: str, rules: List[Any]) -> None:
        view = self.view.get(network_id)
        if view is None:
            return
        view.rules = list(rules)
        self.nav.enter_rules_editor(network_id)
        try:
            with self.guard(self.stdscr):
                edited = self.rules_editor(rules)
        except (InvalidRulesEdit, CommandSpawnFailed) as exc:
            self.view.report(exc.to_app_error())
            return
        finally:
            self.nav.leave_rules_editor()
        if edited == rules:
            self.view.notice("Rules unchanged")
            return
        self.scheduler.mutate(ACTION_SET_RULES, network_id, value=edited)

    def _persist(self, last_network: str | None = None) -> None:
        error = self.store.save(self.view.bookmarks, list_filter=self.view.list_filter, last_network=last_network)
        if error is not None:
            self.view.report(error)


