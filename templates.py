"""User command templates bound to keys.

A template is a shell command line with placeholders that are replaced
by fields of the current selection:

    %i  interface of the network      %n  network id
    %a  first assigned address        %m  member id
    %N  member name

Substitution is literal and done in one pass, so values containing
``%`` are never expanded again. Missing values become empty strings.
Quoting is left to whoever writes the template.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, ContextManager, Dict, Optional, Union

from config_store import MEMBER_CONTEXT, NETWORK_CONTEXT, CommandBinding, DashboardConfig
from constants import PLACEHOLDERS
from errors import CommandSpawnFailed
from process_utils import run_shell_command
from tui_base import AppError, ErrorSeverity
from tui_utils import suspended_terminal
from view_model import MemberView, NetworkView

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(
    "|".join(
        re.escape(token)
        for token in (
            PLACEHOLDERS.INTERFACE,
            PLACEHOLDERS.NETWORK_ID,
            PLACEHOLDERS.ADDRESS,
            PLACEHOLDERS.MEMBER_ID,
            PLACEHOLDERS.MEMBER_NAME,
        )
    )
)


@dataclass(frozen=True)
class NetworkContext:
    network: NetworkView

    name = NETWORK_CONTEXT

    def placeholder_values(self) -> Dict[str, str]:
        return {
            PLACEHOLDERS.INTERFACE: self.network.interface or "",
            PLACEHOLDERS.NETWORK_ID: self.network.network_id,
            PLACEHOLDERS.ADDRESS: self.network.first_address,
        }


@dataclass(frozen=True)
class MemberContext:
    network: NetworkView
    member: MemberView

    name = MEMBER_CONTEXT

    def placeholder_values(self) -> Dict[str, str]:
        return {
            PLACEHOLDERS.INTERFACE: self.network.interface or "",
            PLACEHOLDERS.NETWORK_ID: self.network.network_id,
            PLACEHOLDERS.ADDRESS: self.member.first_address,
            PLACEHOLDERS.MEMBER_ID: self.member.member_id,
            PLACEHOLDERS.MEMBER_NAME: self.member.name,
        }


TemplateContext = Union[NetworkContext, MemberContext]


def resolve(template: str, context: TemplateContext) -> str:
    values = context.placeholder_values()
    return _PLACEHOLDER_RE.sub(lambda match: values.get(match.group(0), ""), template)


@dataclass(frozen=True)
class DispatchResult:
    command: str
    exit_code: Optional[int]
    error: Optional[AppError] = None

    def to_notice(self) -> AppError:
        if self.error is not None:
            return self.error
        if self.exit_code == 0:
            return AppError(f"'{self.command}' finished", ErrorSeverity.INFO)
        return AppError(f"'{self.command}' exited with code {self.exit_code}", ErrorSeverity.WARNING)


Guard = Callable[[object], ContextManager[None]]


def dispatch(
    command: str,
    *,
    stdscr=None,
    pause: bool = False,
    guard: Guard = suspended_terminal,
    runner: Callable[..., int] = run_shell_command,
) -> DispatchResult:
    """Run ``command`` with the terminal handed over; it is restored on every path."""
    with guard(stdscr):
        try:
            exit_code = runner(command, pause=pause)
        except CommandSpawnFailed as exc:
            logger.error("spawn failed: %s", exc)
            return DispatchResult(command, None, exc.to_app_error())
    return DispatchResult(command, exit_code)


class CommandEngine:
    def __init__(
        self,
        config: DashboardConfig,
        *,
        stdscr=None,
        guard: Guard = suspended_terminal,
        runner: Callable[..., int] = run_shell_command,
    ) -> None:
        self.stdscr = stdscr
        self.guard = guard
        self.runner = runner
        self.reload(config)

    def reload(self, config: DashboardConfig) -> None:
        self.pause = config.pause_after_command
        self._bindings = {
            NETWORK_CONTEXT: config.bindings_for(NETWORK_CONTEXT),
            MEMBER_CONTEXT: config.bindings_for(MEMBER_CONTEXT),
        }

    def bindings(self, context_name: str) -> Dict[str, CommandBinding]:
        return dict(self._bindings.get(context_name, {}))

    def binding_for(self, context_name: str, key: int) -> CommandBinding | None:
        if not 0 <= key <= 0x10FFFF:
            return None
        return self._bindings.get(context_name, {}).get(chr(key))

    def run(self, binding: CommandBinding, context: TemplateContext) -> DispatchResult:
        command = resolve(binding.template, context)
        logger.info("dispatching %r bound to %r", command, binding.key)
        return dispatch(command, stdscr=self.stdscr, pause=self.pause, guard=self.guard, runner=self.runner)
