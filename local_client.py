"""Client for the local ZeroTier node's control API (127.0.0.1:9993)."""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from api_base import ApiClient
from constants import AUTHTOKEN_PATHS, LOCAL_API_URL, REFRESH
from errors import AuthRejected, BackendUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkSnapshot:
    network_id: str
    name: str
    status: str
    interface: str | None
    addresses: Tuple[str, ...]
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "NetworkSnapshot":
        return cls(
            network_id=str(data.get("id") or data.get("nwid") or "").lower(),
            name=str(data.get("name") or ""),
            status=str(data.get("status") or ""),
            interface=data.get("portDeviceName") or None,
            addresses=tuple(data.get("assignedAddresses") or ()),
            raw=dict(data),
        )


def authtoken_path(arg: Optional[Path] = None) -> Path:
    if arg is not None:
        return Path(arg).expanduser()
    for platform_prefix, path in AUTHTOKEN_PATHS.items():
        if sys.platform.startswith(platform_prefix):
            return path
    raise AuthRejected("authtoken.secret location unknown on this platform; pass --authtoken")


def read_authtoken(path: Path) -> str:
    try:
        token = path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise AuthRejected(f"cannot read node auth token {path}: {exc}") from exc
    if not token:
        raise AuthRejected(f"node auth token {path} is empty")
    return token


class LocalNodeClient(ApiClient):
    name = "node"

    def __init__(self, authtoken: str | None, base_url: str = LOCAL_API_URL, timeout: float = REFRESH.REQUEST_TIMEOUT, session=None):
        headers = {"X-ZT1-Auth": authtoken} if authtoken else None
        super().__init__(base_url, headers=headers, timeout=timeout, session=session)
        self.has_token = bool(authtoken)

    def _require_token(self) -> None:
        if not self.has_token:
            raise AuthRejected("node auth token not available")

    def list_networks(self) -> List[NetworkSnapshot]:
        self._require_token()
        data = self.request("GET", "/network")
        if not isinstance(data, list):
            raise BackendUnavailable("node: unexpected network list payload")
        return [NetworkSnapshot.from_api(item) for item in data if isinstance(item, dict)]

    def get_network(self, network_id: str) -> NetworkSnapshot | None:
        self._require_token()
        data = self.request("GET", f"/network/{network_id}", allow_missing=True)
        if data is None:
            return None
        return NetworkSnapshot.from_api(data)

    def join(self, network_id: str) -> NetworkSnapshot | None:
        self._require_token()
        logger.info("joining %s", network_id)
        data = self.request("POST", f"/network/{network_id}", {})
        return NetworkSnapshot.from_api(data) if isinstance(data, dict) else None

    def leave(self, network_id: str) -> None:
        self._require_token()
        logger.info("leaving %s", network_id)
        self.request("DELETE", f"/network/{network_id}", allow_missing=True)

    # Rules live on the network controller; this reaches a controller
    # hosted by the local node.
    def get_rules(self, network_id: str) -> List[Any]:
        self._require_token()
        data = self.request("GET", f"/controller/network/{network_id}")
        if not isinstance(data, dict):
            raise BackendUnavailable("node: unexpected controller payload")
        return list(data.get("rules") or [])

    def set_rules(self, network_id: str, rules: List[Any]) -> List[Any]:
        self._require_token()
        data = self.request("POST", f"/controller/network/{network_id}", {"rules": rules})
        if isinstance(data, dict) and isinstance(data.get("rules"), list):
            return data["rules"]
        return rules
