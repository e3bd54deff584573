"""Persisted bookmarks (settings.json) and command bindings (config.json)."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from constants import FILES, REFRESH
from errors import MalformedConfig
from keybindings import MEMBER_CONTEXT_KEYS, NETWORK_CONTEXT_KEYS
from tui_base import AppError, ErrorKind, ErrorSeverity
from validators import validate_binding_key, validate_float, validate_network_id

logger = logging.getLogger(__name__)

NETWORK_CONTEXT = "network"
MEMBER_CONTEXT = "member"

FILTER_ALL = "all"
FILTER_CONNECTED = "connected"

_BINDING_SECTIONS = {
    NETWORK_CONTEXT: ("network_commands", NETWORK_CONTEXT_KEYS),
    MEMBER_CONTEXT: ("member_commands", MEMBER_CONTEXT_KEYS),
}


@dataclass(frozen=True)
class CommandBinding:
    key: str
    template: str
    context: str


@dataclass
class Settings:
    bookmarks: List[str] = field(default_factory=list)
    filter: str = FILTER_ALL
    last_network: str | None = None


@dataclass(frozen=True)
class DashboardConfig:
    bindings: Tuple[CommandBinding, ...] = ()
    refresh_interval: float = REFRESH.INTERVAL
    request_timeout: float = REFRESH.REQUEST_TIMEOUT
    pause_after_command: bool = True

    def bindings_for(self, context: str) -> Dict[str, CommandBinding]:
        return {b.key: b for b in self.bindings if b.context == context}


@dataclass
class LoadResult:
    settings: Settings
    config: DashboardConfig
    warnings: List[AppError] = field(default_factory=list)


def _warning(message: str) -> AppError:
    return AppError(message, ErrorSeverity.WARNING, ErrorKind.MALFORMED_CONFIG)


def _read_json(path: Path) -> Dict[str, Any] | None:
    """Return the decoded object, None when the file is absent.

    Raises MalformedConfig when the file is unreadable or not a JSON object.
    """
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        raise MalformedConfig(f"{path}: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedConfig(f"{path}: top level must be a JSON object")
    return data


def atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2)
            fh.write("\n")
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def parse_bindings(data: Mapping[str, Any], warnings: List[AppError]) -> Tuple[CommandBinding, ...]:
    bindings: List[CommandBinding] = []
    for context, (section, reserved) in _BINDING_SECTIONS.items():
        raw = data.get(section)
        if raw is None:
            continue
        if not isinstance(raw, dict):
            warnings.append(_warning(f"'{section}' must be an object of key -> command; ignored"))
            continue
        for key, template in raw.items():
            checked = validate_binding_key(key, reserved=reserved)
            if not checked.is_valid:
                warnings.append(_warning(f"{section}: {checked.error}; binding ignored"))
                continue
            if not isinstance(template, str) or not template.strip():
                warnings.append(_warning(f"{section}: command for {key!r} must be a non-empty string"))
                continue
            bindings.append(CommandBinding(key=key, template=template, context=context))
    return tuple(bindings)


class ConfigStore:
    def __init__(self, config_dir: Path) -> None:
        self.config_dir = Path(config_dir)
        self.settings_path = self.config_dir / FILES.SETTINGS
        self.config_path = self.config_dir / FILES.CONFIG
        self._settings_doc: Dict[str, Any] = {}
        self._settings_malformed = False
        self._loaded_bookmarks: List[str] = []

    def load(self) -> LoadResult:
        warnings: List[AppError] = []
        settings = self.load_settings(warnings)
        config = self.load_config(warnings)
        return LoadResult(settings=settings, config=config, warnings=warnings)

    def load_settings(self, warnings: List[AppError]) -> Settings:
        try:
            data = _read_json(self.settings_path)
        except MalformedConfig as exc:
            warnings.append(exc.to_app_error())
            self._settings_doc = {}
            self._settings_malformed = True
            self._loaded_bookmarks = []
            return Settings()

        if data is None:
            settings = Settings()
            self._settings_doc = {}
            try:
                self._write_settings(settings)
                logger.info("created %s", self.settings_path)
            except OSError as exc:
                warnings.append(_warning(f"could not create {self.settings_path}: {exc}"))
            return settings

        self._settings_doc = dict(data)
        self._settings_malformed = False
        bookmarks: List[str] = []
        raw_bookmarks = data.get("bookmarks", [])
        if not isinstance(raw_bookmarks, list):
            warnings.append(_warning("'bookmarks' must be a list; ignored"))
            raw_bookmarks = []
        for entry in raw_bookmarks:
            checked = validate_network_id(entry if isinstance(entry, str) else None)
            if not checked.is_valid:
                warnings.append(_warning(f"bookmark {entry!r} ignored: {checked.error}"))
                continue
            if checked.value not in bookmarks:
                bookmarks.append(checked.value)
        self._loaded_bookmarks = list(bookmarks)

        list_filter = data.get("filter", FILTER_ALL)
        if list_filter not in (FILTER_ALL, FILTER_CONNECTED):
            list_filter = FILTER_ALL
        last = data.get("last_network")
        return Settings(
            bookmarks=bookmarks,
            filter=list_filter,
            last_network=last if isinstance(last, str) else None,
        )

    def load_config(self, warnings: List[AppError]) -> DashboardConfig:
        try:
            data = _read_json(self.config_path)
        except MalformedConfig as exc:
            warnings.append(exc.to_app_error())
            warnings.append(_warning("custom command bindings disabled"))
            return DashboardConfig()
        if data is None:
            return DashboardConfig()

        bindings = parse_bindings(data, warnings)
        interval = validate_float(
            data.get("refresh_interval"),
            default=REFRESH.INTERVAL,
            name="refresh_interval",
            min_value=REFRESH.MIN_INTERVAL,
        )
        timeout = validate_float(
            data.get("request_timeout"),
            default=REFRESH.REQUEST_TIMEOUT,
            name="request_timeout",
            min_value=0.1,
        )
        for result in (interval, timeout):
            if not result.is_valid:
                warnings.append(_warning(f"{result.error}; using default"))
        pause = data.get("pause_after_command", True)
        return DashboardConfig(
            bindings=bindings,
            refresh_interval=interval.value if interval.is_valid else REFRESH.INTERVAL,
            request_timeout=timeout.value if timeout.is_valid else REFRESH.REQUEST_TIMEOUT,
            pause_after_command=pause if isinstance(pause, bool) else True,
        )

    def reload_config(self) -> Tuple[DashboardConfig, List[AppError]]:
        warnings: List[AppError] = []
        return self.load_config(warnings), warnings

    def save(
        self,
        bookmarks: Sequence[str],
        *,
        list_filter: str | None = None,
        last_network: str | None = None,
    ) -> AppError | None:
        """Persist the bookmark set; returns a notice on failure.

        A settings file that failed to parse is left alone until the
        bookmark set actually changes.
        """
        if self._settings_malformed and list(bookmarks) == self._loaded_bookmarks:
            logger.info("%s is malformed and bookmarks are unchanged; not overwriting", self.settings_path)
            return None
        settings = Settings(
            bookmarks=list(bookmarks),
            filter=list_filter or self._settings_doc.get("filter", FILTER_ALL),
            last_network=last_network if last_network is not None else self._settings_doc.get("last_network"),
        )
        try:
            self._write_settings(settings)
        except OSError as exc:
            return AppError(f"Failed to save bookmarks: {exc}", ErrorSeverity.ERROR)
        return None

    def _write_settings(self, settings: Settings) -> None:
        payload = dict(self._settings_doc)
        payload["bookmarks"] = list(settings.bookmarks)
        payload["filter"] = settings.filter
        if settings.last_network:
            payload["last_network"] = settings.last_network
        atomic_write_json(self.settings_path, payload)
        self._settings_doc = payload
        self._settings_malformed = False
        self._loaded_bookmarks = list(settings.bookmarks)
