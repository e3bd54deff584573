"""Background refresh and mutation jobs.

Jobs run on a thread pool and never touch the view model: each one
posts exactly one result event to the channel. A job key stays in
flight until the foreground has consumed its event, and triggering a
key that is already in flight is a no-op.
"""
from __future__ import annotations

import itertools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, Set

from central_client import CentralClient
from constants import REFRESH
from errors import DashboardError, to_app_error
from events import EventChannel, MembersRefreshed, MutationCompleted, NetworksRefreshed, RulesLoaded
from local_client import LocalNodeClient
from traffic import CounterSample, sample_counters
from view_model import (
    ACTION_AUTHORIZE,
    ACTION_DEAUTHORIZE,
    ACTION_DELETE,
    ACTION_JOIN,
    ACTION_LEAVE,
    ACTION_RENAME,
    ACTION_SET_RULES,
    MutationResult,
)

logger = logging.getLogger(__name__)

NETWORKS_KEY = "networks"


def network_key(network_id: str) -> str:
    return f"network:{network_id}"


def members_key(network_id: str) -> str:
    return f"members:{network_id}"


def rules_key(network_id: str) -> str:
    return f"rules:{network_id}"


class RefreshScheduler:
    def __init__(
        self,
        channel: EventChannel,
        node: LocalNodeClient,
        central: CentralClient,
        *,
        max_workers: int = REFRESH.MAX_WORKERS,
        sampler: Callable[[], Dict[str, CounterSample]] = sample_counters,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self.channel = channel
        self.node = node
        self.central = central
        self.sampler = sampler
        self.executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ztui-io")
        self._in_flight: Set[str] = set()
        self._mutation_ids = itertools.count(1)

    @property
    def rules_backend(self):
        return self.central if self.central.has_token else self.node

    def in_flight(self, job_key: str) -> bool:
        return job_key in self._in_flight

    def complete(self, job_key: str) -> None:
        self._in_flight.discard(job_key)

    def _submit(self, job_key: str, job: Callable[[], Any]) -> bool:
        if job_key in self._in_flight:
            logger.debug("%s already in flight", job_key)
            return False
        self._in_flight.add(job_key)
        self.executor.submit(self._run, job)
        return True

    def _run(self, job: Callable[[], Any]) -> None:
        event = job()
        self.channel.post(event)

    # refresh jobs

    def refresh_networks(self) -> bool:
        def job() -> NetworksRefreshed:
            try:
                snapshots = tuple(self.node.list_networks())
                counters = self.sampler()
            except DashboardError as exc:
                return NetworksRefreshed(NETWORKS_KEY, error=exc.to_app_error())
            except Exception as exc:
                logger.exception("network refresh failed")
                return NetworksRefreshed(NETWORKS_KEY, error=to_app_error(exc))
            return NetworksRefreshed(NETWORKS_KEY, snapshots=snapshots, counters=counters)

        return self._submit(NETWORKS_KEY, job)

    def refresh_network(self, network_id: str) -> bool:
        """Refresh one network; a no-op while a full listing is in flight."""
        if NETWORKS_KEY in self._in_flight:
            logger.debug("%s covered by the in-flight full listing", network_id)
            return False
        key = network_key(network_id)

        def job() -> NetworksRefreshed:
            try:
                snapshot = self.node.get_network(network_id)
            except DashboardError as exc:
                return NetworksRefreshed(key, scope=(network_id,), error=exc.to_app_error())
            except Exception as exc:
                logger.exception("refresh of %s failed", network_id)
                return NetworksRefreshed(key, scope=(network_id,), error=to_app_error(exc))
            snapshots = (snapshot,) if snapshot is not None else ()
            return NetworksRefreshed(key, snapshots=snapshots, scope=(network_id,))

        return self._submit(key, job)

    def refresh_members(self, network_id: str) -> bool:
        key = members_key(network_id)

        def job() -> MembersRefreshed:
            try:
                members = tuple(self.central.list_members(network_id))
            except DashboardError as exc:
                return MembersRefreshed(key, network_id, error=exc.to_app_error())
            except Exception as exc:
                logger.exception("member refresh of %s failed", network_id)
                return MembersRefreshed(key, network_id, error=to_app_error(exc))
            return MembersRefreshed(key, network_id, members=members)

        return self._submit(key, job)

    def load_rules(self, network_id: str) -> bool:
        key = rules_key(network_id)
        backend = self.rules_backend

        def job() -> RulesLoaded:
            try:
                rules = backend.get_rules(network_id)
            except DashboardError as exc:
                return RulesLoaded(key, network_id, error=exc.to_app_error())
            except Exception as exc:
                logger.exception("loading rules of %s failed", network_id)
                return RulesLoaded(key, network_id, error=to_app_error(exc))
            return RulesLoaded(key, network_id, rules=rules)

        return self._submit(key, job)

    # mutations

    def mutate(self, action: str, network_id: str, *, member_id: str | None = None, value: Any = None) -> bool:
        call = self._mutation_call(action, network_id, member_id, value)
        key = f"mutation:{next(self._mutation_ids)}"

        def job() -> MutationCompleted:
            try:
                returned = call()
            except DashboardError as exc:
                result = MutationResult(action, network_id, ok=False, member_id=member_id, error=exc.to_app_error())
                return MutationCompleted(key, result)
            except Exception as exc:
                logger.exception("%s on %s failed", action, network_id)
                result = MutationResult(action, network_id, ok=False, member_id=member_id, error=to_app_error(exc))
                return MutationCompleted(key, result)
            result = MutationResult(
                action,
                network_id,
                ok=True,
                member_id=member_id,
                value=returned if returned is not None else value,
            )
            return MutationCompleted(key, result)

        return self._submit(key, job)

    def _mutation_call(self, action: str, network_id: str, member_id: str | None, value: Any) -> Callable[[], Any]:
        if action == ACTION_JOIN:
            return lambda: self.node.join(network_id)
        if action == ACTION_LEAVE:
            return lambda: self.node.leave(network_id)
        if action == ACTION_SET_RULES:
            backend = self.rules_backend
            return lambda: backend.set_rules(network_id, value)
        if member_id is None:
            raise ValueError(f"{action} needs a member id")
        if action == ACTION_RENAME:
            return lambda: self.central.rename_member(network_id, member_id, str(value))
        if action == ACTION_AUTHORIZE:
            return lambda: self.central.set_authorized(network_id, member_id, True)
        if action == ACTION_DEAUTHORIZE:
            return lambda: self.central.set_authorized(network_id, member_id, False)
        if action == ACTION_DELETE:
            return lambda: self.central.delete_member(network_id, member_id)
        raise ValueError(f"unknown action {action!r}")

    def shutdown(self) -> None:
        # in-flight requests are abandoned; their results are never read
        self.executor.shutdown(wait=False, cancel_futures=True)
