"""Watch mode: re-verify exercises whenever their files change."""

from __future__ import annotations

import enum
import queue
import subprocess
import sys
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .exercise import Exercise
from .verify import VerificationFailed, verify

_POLL_SECONDS = 1.0
_DEBOUNCE_SECONDS = 1.0

_HELP = """Commands available to you in watch mode:
  hint   - prints the current exercise's hint
  clear  - clears the screen
  quit   - quits watch mode
  !<cmd> - executes a command, like `!rustc --explain E0381`
  help   - displays this help message

Watch mode automatically re-evaluates the current exercise
when you edit a file's contents."""


class WatchStatus(enum.Enum):
    FINISHED = enum.auto()
    UNFINISHED = enum.auto()


@dataclass
class WatchState:
    """State shared between the watch loop and the interactive shell."""

    failed_exercise_hint: str | None = None
    should_quit: threading.Event = field(default_factory=threading.Event)


def handle_command(line: str, state: WatchState) -> None:
    """Carry out one line typed into the watch-mode shell."""
    command = line.strip()
    if command == "hint":
        hint = state.failed_exercise_hint
        if hint is not None:
            print(hint)
    elif command == "clear":
        print("\x1b[2J\x1b[1;1H")
    elif command == "quit":
        state.should_quit.set()
        print("Bye!")
    elif command == "help":
        print(_HELP)
    elif command.startswith("!"):
        cmd = command[1:]
        parts = cmd.split()
        if not parts:
            print("no command provided")
        else:
            try:
                subprocess.run(parts, check=False)
            except OSError as exc:
                print(f"failed to execute command `{cmd}`: {exc}")
    else:
        print(f"unknown command: {command}")


def _shell(state: WatchState) -> None:
    while True:
        try:
            line = sys.stdin.readline()
        except (OSError, ValueError) as exc:
            print(f"error reading command: {exc}")
            return
        if not line:
            return
        handle_command(line, state)


def _spawn_watch_shell(state: WatchState) -> None:
    print(
        "Welcome to watch mode! You can type 'help' to get an overview "
        "of the commands you can use here."
    )
    threading.Thread(target=_shell, args=(state,), daemon=True).start()


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, events: queue.Queue) -> None:
        super().__init__()
        self._events = events

    def _push(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            path = event.src_path
            if isinstance(path, bytes):
                path = path.decode("utf-8", errors="replace")
            self._events.put(Path(path))

    def on_created(self, event: FileSystemEvent) -> None:
        self._push(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._push(event)


def _clear_screen() -> None:
    print("\x1bc")


def _ends_with(full: Path, suffix: Path) -> bool:
    parts = suffix.parts
    return len(parts) <= len(full.parts) and full.parts[len(full.parts) - len(parts):] == parts


def _collect_changes(events: queue.Queue) -> list[Path]:
    """Wait for a change, then gather the others that follow it closely."""
    try:
        first = events.get(timeout=_POLL_SECONDS)
    except queue.Empty:
        return []
    changed = {first: None}
    deadline = time.monotonic() + _DEBOUNCE_SECONDS
    while (remaining := deadline - time.monotonic()) > 0:
        try:
            changed[events.get(timeout=remaining)] = None
        except queue.Empty:
            break
    return list(changed)


def watch(exercises: Sequence[Exercise], verbose: bool, success_hints: bool) -> WatchStatus:
    """Verify exercises, then re-verify on every change below ./exercises."""
    exercises = list(exercises)
    events: queue.Queue = queue.Queue()
    observer = Observer()
    observer.schedule(_ChangeHandler(events), "./exercises", recursive=True)
    observer.start()
    try:
        _clear_screen()
        state = WatchState()
        try:
            verify(exercises, (0, len(exercises)), verbose, success_hints)
            return WatchStatus.FINISHED
        except VerificationFailed as exc:
            state.failed_exercise_hint = exc.exercise.hint

        _spawn_watch_shell(state)
        while True:
            for path in _collect_changes(events):
                if path.suffix != ".rs" or not path.exists():
                    continue
                filepath = path.resolve()
                edited = next((e for e in exercises if _ends_with(filepath, e.path)), None)
                pending = [edited] if edited is not None else []
                pending += [
                    e for e in exercises
                    if not e.looks_done() and not _ends_with(filepath, e.path)
                ]
                num_done = sum(1 for e in exercises if e.looks_done())
                _clear_screen()
                try:
                    verify(pending, (num_done, len(exercises)), verbose, success_hints)
                    return WatchStatus.FINISHED
                except VerificationFailed as exc:
                    state.failed_exercise_hint = exc.exercise.hint
            if state.should_quit.is_set():
                return WatchStatus.UNFINISHED
    finally:
        observer.stop()
        observer.join()