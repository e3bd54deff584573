from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class LayoutBreakpoints:
    WIDE_MIN_WIDTH: int = 120
    NARROW_MIN_WIDTH: int = 40
    MIN_HEIGHT: int = 8


@dataclass(frozen=True)
class UIDefaults:
    LOG_HISTORY: int = 200
    LOG_ROWS: int = 4
    NOTICE_TTL: float = 8.0
    INPUT_POLL_MS: int = 100


@dataclass(frozen=True)
class RefreshDefaults:
    INTERVAL: float = 2.0
    MIN_INTERVAL: float = 0.5
    REQUEST_TIMEOUT: float = 5.0
    MAX_WORKERS: int = 4
    USAGE_SAMPLES: int = 3


@dataclass(frozen=True)
class Placeholders:
    INTERFACE: str = "%i"
    NETWORK_ID: str = "%n"
    ADDRESS: str = "%a"
    MEMBER_ID: str = "%m"
    MEMBER_NAME: str = "%N"


@dataclass(frozen=True)
class FileNames:
    SETTINGS: str = "settings.json"
    CONFIG: str = "config.json"
    ENV: str = ".env"
    LOG: str = "ztui.log"


LAYOUT = LayoutBreakpoints()
UI = UIDefaults()
REFRESH = RefreshDefaults()
PLACEHOLDERS = Placeholders()
FILES = FileNames()

LOCAL_API_URL = "http://127.0.0.1:9993"
CENTRAL_API_URL = "https://api.zerotier.com/api/v1"
CENTRAL_TOKEN_ENV = "ZEROTIER_CENTRAL_TOKEN"
CONFIG_DIR_ENV = "ZTUI_CONFIG_DIR"

STATUS_OK = "OK"
STATUS_REQUESTING = "REQUESTING_CONFIGURATION"
STATUS_DISCONNECTED = "DISCONNECTED"

AUTHTOKEN_PATHS = {
    "linux": Path("/var/lib/zerotier-one/authtoken.secret"),
    "darwin": Path("/Library/Application Support/ZeroTier/One/authtoken.secret"),
    "win32": Path("C:/ProgramData/ZeroTier/One/authtoken.secret"),
}


def default_config_dir() -> Path:
    override = os.environ.get(CONFIG_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "zerotier-terminal-ui"
