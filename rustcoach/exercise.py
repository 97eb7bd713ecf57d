"""Exercise definitions, their compilation, execution and completion state."""

from __future__ import annotations

import enum
import os
import re
import subprocess
import threading
import tomllib
from dataclasses import dataclass
from pathlib import Path

from . import ui

RUSTC_COLOR_ARGS = ("--color", "always")
RUSTC_EDITION_ARGS = ("--edition", "2021")
I_AM_DONE_REGEX = re.compile(r"^\s*///?\s*I\s+AM\s+NOT\s+DONE", re.MULTILINE)
CONTEXT = 2
CLIPPY_CARGO_TOML_PATH = Path("./exercises/clippy/Cargo.toml")
BUILD_SCRIPT_CARGO_TOML_PATH = Path("./exercises/tests/Cargo.toml")


def temp_file() -> str:
    """Return a temporary binary name unique to this process and thread."""
    return f"./temp_{os.getpid()}_ThreadId{threading.get_ident()}"


def clean() -> None:
    """Remove the temporary binary, ignoring a missing file."""
    try:
        os.remove(temp_file())
    except OSError:
        pass


class Mode(enum.Enum):
    COMPILE = "compile"
    TEST = "test"
    CLIPPY = "clippy"
    BUILD_SCRIPT = "buildscript"


@dataclass(frozen=True)
class ContextLine:
    line: str
    number: int
    important: bool


@dataclass(frozen=True)
class State:
    """Done when ``context`` is None, otherwise pending with context lines."""

    context: tuple[ContextLine, ...] | None = None

    def is_done(self) -> bool:
        return self.context is None


@dataclass(frozen=True)
class ExerciseOutput:
    stdout: str
    stderr: str


class CompilationError(Exception):
    """Raised when an exercise fails to compile."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__(output.stderr)
        self.output = output


class ExecutionError(Exception):
    """Raised when a compiled exercise exits unsuccessfully."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__(output.stderr)
        self.output = output


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


def _execute(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(args, capture_output=True, check=False)


def _lines(source: str) -> list[str]:
    parts = source.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def _cargo_toml(name: str) -> str:
    return (
        "[package]\n"
        f'name = "{name}"\n'
        'version = "0.0.1"\n'
        'edition = "2021"\n'
        "[[bin]]\n"
        f'name = "{name}"\n'
        f'path = "{name}.rs"'
    )


@dataclass
class Exercise:
    name: str
    path: Path
    mode: Mode
    hint: str

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    def __str__(self) -> str:
        return str(self.path)

    def _write_cargo_toml(self, target: Path) -> None:
        message = (
            "Failed to write Clippy Cargo.toml file."
            if ui.no_emoji()
            else "Failed to write 📎 Clippy 📎 Cargo.toml file."
        )
        try:
            target.write_text(_cargo_toml(self.name), encoding="utf-8")
        except OSError as exc:
            raise RuntimeError(message) from exc

    def compile(self) -> CompiledExercise:
        """Compile the exercise; raise CompilationError on failure."""
        path = str(self.path)
        rustc_flags = [*RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS]
        if self.mode is Mode.COMPILE:
            result = _execute(["rustc", path, "-o", temp_file(), *rustc_flags])
        elif self.mode is Mode.TEST:
            result = _execute(["rustc", "--test", path, "-o", temp_file(), *rustc_flags])
        elif self.mode is Mode.CLIPPY:
            self._write_cargo_toml(CLIPPY_CARGO_TOML_PATH)
            # Build a runnable binary too; clippy reports the same failures.
            _execute(["rustc", path, "-o", temp_file(), *rustc_flags])
            manifest = str(CLIPPY_CARGO_TOML_PATH)
            _execute(["cargo", "clean", "--manifest-path", manifest, *RUSTC_COLOR_ARGS])
            result = _execute(
                [
                    "cargo", "clippy", "--manifest-path", manifest, *RUSTC_COLOR_ARGS,
                    "--", "-D", "warnings", "-D", "clippy::float_cmp",
                ]
            )
        else:
            self._write_cargo_toml(BUILD_SCRIPT_CARGO_TOML_PATH)
            result = _execute(
                ["cargo", "test", "--manifest-path", str(BUILD_SCRIPT_CARGO_TOML_PATH)]
            )

        if result.returncode == 0:
            return CompiledExercise(self)
        clean()
        raise CompilationError(
            ExerciseOutput(stdout=_decode(result.stdout), stderr=_decode(result.stderr))
        )

    def _run(self) -> ExerciseOutput:
        if self.mode is Mode.BUILD_SCRIPT:
            return ExerciseOutput(stdout="", stderr="")
        args = [temp_file()]
        if self.mode is Mode.TEST:
            args.append("--show-output")
        result = _execute(args)
        output = ExerciseOutput(stdout=_decode(result.stdout), stderr=_decode(result.stderr))
        if result.returncode != 0:
            raise ExecutionError(output)
        return output

    def state(self) -> State:
        """Return Done, or Pending with the lines around the marker comment."""
        source = self.path.read_text(encoding="utf-8")
        if not I_AM_DONE_REGEX.search(source):
            return State()

        lines = _lines(source)
        matched = next(
            (i for i, line in enumerate(lines) if I_AM_DONE_REGEX.search(line)), None
        )
        if matched is None:
            raise RuntimeError(f"marker in {self.path} does not sit on a single line")

        low = max(matched - CONTEXT, 0)
        high = matched + CONTEXT
        context = tuple(
            ContextLine(line=line, number=i + 1, important=i == matched)
            for i, line in enumerate(lines)
            if low <= i <= high
        )
        return State(context)

    def looks_done(self) -> bool:
        """Whether the marker comment is gone from the exercise file."""
        return self.state().is_done()


@dataclass
class CompiledExercise:
    """A successfully compiled exercise; closing it removes the binary."""

    exercise: Exercise

    def run(self) -> ExerciseOutput:
        return self.exercise._run()

    def close(self) -> None:
        clean()

    def __enter__(self) -> CompiledExercise:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def parse_exercises(text: str) -> list[Exercise]:
    """Parse the exercise list from TOML text."""
    data = tomllib.loads(text)
    entries = data.get("exercises")
    if not isinstance(entries, list):
        raise ValueError("missing field `exercises`")
    exercises = []
    for entry in entries:
        missing = [key for key in ("name", "path", "mode", "hint") if key not in entry]
        if missing:
            raise ValueError(f"missing field `{missing[0]}`")
        exercises.append(
            Exercise(
                name=entry["name"],
                path=Path(entry["path"]),
                mode=Mode(entry["mode"]),
                hint=entry["hint"],
            )
        )
    return exercises


def load_exercises(path: str | os.PathLike = "info.toml") -> list[Exercise]:
    """Read and parse an exercise list file."""
    return parse_exercises(Path(path).read_text(encoding="utf-8"))