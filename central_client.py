"""Client for the ZeroTier Central directory API."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from api_base import ApiClient
from constants import CENTRAL_API_URL, REFRESH
from errors import AuthRejected, BackendUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemberSnapshot:
    member_id: str
    name: str
    authorized: bool
    addresses: Tuple[str, ...]
    last_online_ms: int | None = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "MemberSnapshot":
        config = data.get("config") or {}
        last_online = data.get("lastOnline") or data.get("lastSeen")
        return cls(
            member_id=str(data.get("nodeId") or config.get("id") or data.get("id", "")).lower(),
            name=str(data.get("name") or ""),
            authorized=bool(config.get("authorized", False)),
            addresses=tuple(config.get("ipAssignments") or ()),
            last_online_ms=int(last_online) if isinstance(last_online, (int, float)) else None,
            raw=dict(data),
        )


class CentralClient(ApiClient):
    name = "central"

    def __init__(self, token: str | None, base_url: str = CENTRAL_API_URL, timeout: float = REFRESH.REQUEST_TIMEOUT, session=None):
        headers = {"Authorization": f"token {token}"} if token else None
        super().__init__(base_url, headers=headers, timeout=timeout, session=session)
        self.has_token = bool(token)

    def _require_token(self) -> None:
        if not self.has_token:
            raise AuthRejected("Central API token not configured (set ZEROTIER_CENTRAL_TOKEN)")

    def list_members(self, network_id: str) -> List[MemberSnapshot]:
        self._require_token()
        data = self.request("GET", f"/network/{network_id}/member")
        if not isinstance(data, list):
            raise BackendUnavailable("central: unexpected member list payload")
        return [MemberSnapshot.from_api(item) for item in data if isinstance(item, dict)]

    def _update_member(self, network_id: str, member_id: str, payload: Dict[str, Any]) -> MemberSnapshot | None:
        self._require_token()
        data = self.request("POST", f"/network/{network_id}/member/{member_id}", payload)
        return MemberSnapshot.from_api(data) if isinstance(data, dict) else None

    def rename_member(self, network_id: str, member_id: str, name: str) -> MemberSnapshot | None:
        logger.info("renaming %s on %s to %r", member_id, network_id, name)
        return self._update_member(network_id, member_id, {"name": name})

    def set_authorized(self, network_id: str, member_id: str, authorized: bool) -> MemberSnapshot | None:
        logger.info("%s %s on %s", "authorizing" if authorized else "deauthorizing", member_id, network_id)
        return self._update_member(network_id, member_id, {"config": {"authorized": authorized}})

    def delete_member(self, network_id: str, member_id: str) -> None:
        self._require_token()
        logger.info("deleting %s from %s", member_id, network_id)
        self.request("DELETE", f"/network/{network_id}/member/{member_id}", allow_missing=True)

    def get_network(self, network_id: str) -> Dict[str, Any]:
        self._require_token()
        data = self.request("GET", f"/network/{network_id}")
        if not isinstance(data, dict):
            raise BackendUnavailable("central: unexpected network payload")
        return data

    def get_rules(self, network_id: str) -> List[Any]:
        config = self.get_network(network_id).get("config") or {}
        return list(config.get("rules") or [])

    def set_rules(self, network_id: str, rules: List[Any]) -> List[Any]:
        self._require_token()
        data = self.request("POST", f"/network/{network_id}", {"config": {"rules": rules}})
        if isinstance(data, dict):
            returned = (data.get("config") or {}).get("rules")
            if isinstance(returned, list):
                return returned
        return rules
