from __future__ import annotations

import atexit
import json
import logging
import os
import shlex
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, List, Sequence

from errors import CommandSpawnFailed, InvalidRulesEdit

logger = logging.getLogger(__name__)

_active_processes: List[subprocess.Popen] = []


def terminate_process(proc: subprocess.Popen, *, timeout: float = 5.0) -> None:
    if proc.poll() is not None:
        return
    try:
        proc.terminate()
        proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()


def cleanup_processes() -> None:
    for proc in list(_active_processes):
        terminate_process(proc)
    _active_processes.clear()


@contextmanager
def managed_process(cmd: str | Sequence[str], **kwargs):
    try:
        proc = subprocess.Popen(cmd, **kwargs)
    except (OSError, ValueError) as exc:
        # ValueError: arguments Popen refuses, such as an embedded NUL byte
        raise CommandSpawnFailed(f"could not start {cmd!r}: {exc}") from exc
    _active_processes.append(proc)
    try:
        yield proc
    finally:
        if proc in _active_processes:
            _active_processes.remove(proc)


def run_shell_command(command: str, *, pause: bool = False) -> int:
    """Run ``command`` through the shell in the foreground and return its exit code.

    Must be called with the terminal already handed over (see
    ``tui_utils.suspended_terminal``). Raises CommandSpawnFailed when the
    shell itself cannot be started.
    """
    logger.info("running command: %s", command)
    print(f"$ {command}", flush=True)
    with managed_process(command, shell=True) as proc:
        try:
            exit_code = proc.wait()
        except KeyboardInterrupt:
            terminate_process(proc)
            exit_code = 130
    logger.info("command exited with code %s", exit_code)
    if pause:
        print(f"\n[exit code {exit_code}] Press Enter to return...", flush=True)
        try:
            input()
        except EOFError:
            pass
    return exit_code


def editor_command() -> List[str]:
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
    try:
        return shlex.split(editor)
    except ValueError as exc:
        raise CommandSpawnFailed(f"cannot parse editor command {editor!r}: {exc}") from exc


def launch_editor(path: Path) -> int:
    cmd = editor_command() + [str(path)]
    logger.info("launching editor: %s", shlex.join(cmd))
    with managed_process(cmd) as proc:
        return proc.wait()


def edit_json_in_editor(data: Any, *, launcher: Callable[[Path], int] | None = None) -> List[Any]:
    """Open ``data`` as pretty-printed JSON in the user's editor and parse it back.

    Raises InvalidRulesEdit when the result is not a JSON list, and
    CommandSpawnFailed when the editor cannot be started.
    """
    launcher = launcher or launch_editor
    try:
        fd, tmp_name = tempfile.mkstemp(prefix="ztui-rules-", suffix=".json")
    except OSError as exc:
        raise CommandSpawnFailed(f"cannot create a temporary file for the editor: {exc}") from exc
    path = Path(tmp_name)
    try:
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
                fh.write("\n")
        except OSError as exc:
            raise CommandSpawnFailed(f"cannot write {path}: {exc}") from exc
        exit_code = launcher(path)
        if exit_code != 0:
            raise InvalidRulesEdit(f"editor exited with code {exit_code}; edit discarded")
        try:
            edited = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise InvalidRulesEdit(f"cannot read edited rules: {exc}") from exc
        except ValueError as exc:
            raise InvalidRulesEdit(f"edited rules are not valid JSON: {exc}") from exc
    finally:
        path.unlink(missing_ok=True)
    if not isinstance(edited, list):
        raise InvalidRulesEdit("edited rules must be a JSON list")
    return edited


atexit.register(cleanup_processes)
