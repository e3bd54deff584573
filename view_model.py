"""Reconciled in-memory state: bookmarks x node state x Central members.

Only the foreground consumer mutates a ViewModel. Background jobs hand
in disposable snapshots which are merged here; views are never shared
with the adapters.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from central_client import MemberSnapshot
from config_store import FILTER_ALL, FILTER_CONNECTED
from constants import STATUS_DISCONNECTED, STATUS_REQUESTING
from local_client import NetworkSnapshot
from traffic import CounterSample, TrafficHistory
from tui_base import AppError, UIState, handle_error, notify

logger = logging.getLogger(__name__)

ACTION_JOIN = "join"
ACTION_LEAVE = "leave"
ACTION_RENAME = "rename"
ACTION_AUTHORIZE = "authorize"
ACTION_DEAUTHORIZE = "deauthorize"
ACTION_DELETE = "delete"
ACTION_SET_RULES = "set_rules"

MEMBER_ACTIONS = (ACTION_RENAME, ACTION_AUTHORIZE, ACTION_DEAUTHORIZE, ACTION_DELETE)


@dataclass
class NetworkView:
    network_id: str
    name: str = ""
    status: str | None = None
    interface: str | None = None
    addresses: Tuple[str, ...] = ()
    rules: Optional[List[Any]] = None
    raw: Dict[str, Any] = field(default_factory=dict)
    connected: bool = False
    stale: bool = True
    last_polled: float | None = None
    traffic: TrafficHistory = field(default_factory=TrafficHistory)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "network_id" and "network_id" in self.__dict__:
            raise AttributeError("network_id is immutable")
        super().__setattr__(name, value)

    @property
    def display_status(self) -> str:
        if not self.connected or not self.status:
            return STATUS_DISCONNECTED
        return self.status

    @property
    def first_address(self) -> str:
        return self.addresses[0] if self.addresses else ""

    def detail(self) -> Dict[str, Any]:
        if self.raw:
            return dict(self.raw)
        return {
            "id": self.network_id,
            "name": self.name,
            "status": self.display_status,
            "portDeviceName": self.interface,
            "assignedAddresses": list(self.addresses),
        }


@dataclass(frozen=True)
class MemberView:
    network_id: str
    member_id: str
    name: str
    authorized: bool
    addresses: Tuple[str, ...] = ()
    last_online_ms: int | None = None

    @classmethod
    def from_snapshot(cls, network_id: str, snapshot: MemberSnapshot) -> "MemberView":
        return cls(
            network_id=network_id,
            member_id=snapshot.member_id,
            name=snapshot.name,
            authorized=snapshot.authorized,
            addresses=tuple(snapshot.addresses),
            last_online_ms=snapshot.last_online_ms,
        )

    @property
    def first_address(self) -> str:
        return self.addresses[0] if self.addresses else ""


@dataclass(frozen=True)
class MutationResult:
    action: str
    network_id: str
    ok: bool
    member_id: str | None = None
    value: Any = None
    error: AppError | None = None


class ViewModel:
    def __init__(
        self,
        bookmarks: Iterable[str] = (),
        *,
        list_filter: str = FILTER_ALL,
        ui_state: UIState | None = None,
    ) -> None:
        self._order: List[str] = []
        self._networks: Dict[str, NetworkView] = {}
        self._members: Dict[str, Tuple[MemberView, ...]] = {}
        self.list_filter = list_filter if list_filter in (FILTER_ALL, FILTER_CONNECTED) else FILTER_ALL
        self.unbookmarked: Tuple[str, ...] = ()
        self.ui_state = ui_state or UIState()
        for network_id in bookmarks:
            self.add_bookmark(network_id)

    # bookmarks

    @property
    def bookmarks(self) -> List[str]:
        return list(self._order)

    def is_bookmarked(self, network_id: str) -> bool:
        return network_id in self._networks

    def get(self, network_id: str) -> NetworkView | None:
        return self._networks.get(network_id)

    @property
    def networks(self) -> List[NetworkView]:
        return [self._networks[nid] for nid in self._order]

    def visible_networks(self) -> List[NetworkView]:
        if self.list_filter == FILTER_CONNECTED:
            return [view for view in self.networks if view.connected]
        return self.networks

    def add_bookmark(self, network_id: str) -> bool:
        if network_id in self._networks:
            return False
        self._networks[network_id] = NetworkView(network_id=network_id)
        self._order.append(network_id)
        self.unbookmarked = tuple(nid for nid in self.unbookmarked if nid != network_id)
        return True

    def forget(self, network_id: str) -> bool:
        if network_id not in self._networks:
            return False
        del self._networks[network_id]
        self._order.remove(network_id)
        self._members.pop(network_id, None)
        return True

    def toggle_filter(self) -> str:
        self.list_filter = FILTER_CONNECTED if self.list_filter == FILTER_ALL else FILTER_ALL
        return self.list_filter

    # merges

    def merge_network_snapshot(
        self,
        snapshots: Sequence[NetworkSnapshot],
        *,
        scope: Iterable[str] | None = None,
        counters: Dict[str, CounterSample] | None = None,
        at: float | None = None,
    ) -> None:
        """Fold a node snapshot into the bookmarked views.

        ``scope`` names the network ids the snapshot is authoritative
        for; None means a full listing. Bookmarked ids inside the scope
        but missing from the snapshot are marked disconnected and keep
        their last known values. Unbookmarked networks are not added.
        """
        at = time.monotonic() if at is None else at
        by_id = {snap.network_id: snap for snap in snapshots}
        covered = set(self._order) if scope is None else set(scope)

        for network_id in self._order:
            view = self._networks[network_id]
            snap = by_id.get(network_id)
            if snap is not None:
                view.name = snap.name or view.name
                view.status = snap.status or view.status
                view.interface = snap.interface
                view.addresses = tuple(snap.addresses)
                view.raw = dict(snap.raw)
                view.connected = snap.status != STATUS_DISCONNECTED
                view.stale = False
                view.last_polled = at
            elif network_id in covered:
                if view.connected:
                    logger.info("%s is no longer reported by the node", network_id)
                view.connected = False
                view.status = STATUS_DISCONNECTED
                view.stale = True

            if counters and view.connected and view.interface in counters:
                view.traffic.add(counters[view.interface])

        if scope is None:
            self.unbookmarked = tuple(nid for nid in by_id if nid not in self._networks)

    def members(self, network_id: str) -> Tuple[MemberView, ...]:
        return self._members.get(network_id, ())

    def has_members(self, network_id: str) -> bool:
        return network_id in self._members

    def merge_member_snapshot(self, network_id: str, members: Sequence[MemberSnapshot]) -> None:
        if network_id not in self._networks:
            return
        fresh = tuple(MemberView.from_snapshot(network_id, snap) for snap in members)
        # single rebinding: readers see the old or the new tuple, never a mix
        self._members[network_id] = fresh

    # mutations

    def apply_mutation_result(self, result: MutationResult) -> None:
        if not result.ok:
            if result.error is not None:
                self.report(result.error)
            return

        view = self._networks.get(result.network_id)
        if view is None:
            return

        if result.action == ACTION_JOIN:
            if isinstance(result.value, NetworkSnapshot):
                self.merge_network_snapshot([result.value], scope=[result.network_id])
            else:
                view.connected = True
                view.status = STATUS_REQUESTING
            self.notice(f"Joined {result.network_id}")
        elif result.action == ACTION_LEAVE:
            view.connected = False
            view.status = STATUS_DISCONNECTED
            view.stale = True
            self.notice(f"Left {result.network_id}")
        elif result.action == ACTION_SET_RULES:
            view.rules = list(result.value or [])
            self.notice(f"Rules updated for {result.network_id}")
        elif result.action in MEMBER_ACTIONS:
            self._apply_member_mutation(result)

    def _apply_member_mutation(self, result: MutationResult) -> None:
        network_id = result.network_id
        current = self._members.get(network_id, ())
        if result.action == ACTION_DELETE:
            self._members[network_id] = tuple(m for m in current if m.member_id != result.member_id)
            self.notice(f"Deleted member {result.member_id}")
            return

        updated: List[MemberView] = []
        for member in current:
            if member.member_id != result.member_id:
                updated.append(member)
                continue
            if isinstance(result.value, MemberSnapshot):
                updated.append(MemberView.from_snapshot(network_id, result.value))
            elif result.action == ACTION_RENAME:
                updated.append(replace(member, name=str(result.value or "")))
            else:
                updated.append(replace(member, authorized=result.action == ACTION_AUTHORIZE))
        self._members[network_id] = tuple(updated)
        self.notice(f"{result.action.capitalize()} {result.member_id}: ok")

    # notices

    def report(self, error: AppError) -> None:
        handle_error(error, self.ui_state)

    def notice(self, message: str) -> None:
        notify(self.ui_state, message)
