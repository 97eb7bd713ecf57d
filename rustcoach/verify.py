"""Checking that exercises compile, run and are marked as finished."""

from __future__ import annotations

import enum
import sys
from collections.abc import Iterable

from . import ui
from .exercise import (
    CompilationError,
    CompiledExercise,
    ExecutionError,
    Exercise,
    Mode,
)

_BAR_WIDTH = 60
_SPINNER_FRAMES = "⠁⠂⠄⡀⢀⠠⠐⠈"
_CLEAR_LINE = "\r\x1b[2K"


def _draws() -> bool:
    return sys.stderr.isatty()


class _Spinner:
    """A one-line status indicator drawn on a terminal's standard error."""

    def __init__(self, message: str) -> None:
        self._frame = 0
        self.set_message(message)

    def set_message(self, message: str) -> None:
        if _draws():
            frame = _SPINNER_FRAMES[self._frame % len(_SPINNER_FRAMES)]
            self._frame += 1
            sys.stderr.write(f"{_CLEAR_LINE}{frame} {message}")
            sys.stderr.flush()

    def finish_and_clear(self) -> None:
        if _draws():
            sys.stderr.write(_CLEAR_LINE)
            sys.stderr.flush()


class _ProgressBar:
    """A progress bar of the form ``Progress: [###>---] pos/len msg``."""

    def __init__(self, length: int) -> None:
        self.length = length
        self.position = 0
        self.message = ""

    def set_position(self, position: int) -> None:
        self.position = position
        self._draw()

    def inc(self, delta: int) -> None:
        self.position += delta
        self._draw()

    def set_message(self, message: str) -> None:
        self.message = message
        self._draw()

    def _draw(self) -> None:
        if not _draws():
            return
        if self.length:
            filled = min(_BAR_WIDTH, _BAR_WIDTH * self.position // self.length)
        else:
            filled = _BAR_WIDTH
        head = ">" if filled < _BAR_WIDTH else ""
        rest = "-" * (_BAR_WIDTH - filled - len(head))
        bar = ui.green("#" * filled + head) + ui.red(rest)
        sys.stderr.write(
            f"{_CLEAR_LINE}Progress: [{bar}] {self.position}/{self.length} {self.message}\n"
        )
        sys.stderr.flush()


class RunMode(enum.Enum):
    INTERACTIVE = enum.auto()
    NON_INTERACTIVE = enum.auto()


class ExerciseFailed(Exception):
    """Raised when an exercise fails to compile, run or pass its tests."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(str(exercise))
        self.exercise = exercise


class VerificationFailed(Exception):
    """Raised by verify with the first exercise that is not finished."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(str(exercise))
        self.exercise = exercise


def verify(
    exercises: Iterable[Exercise],
    progress: tuple[int, int],
    verbose: bool,
    success_hints: bool,
) -> None:
    """Check each exercise in turn; raise VerificationFailed at the first failure."""
    num_done, total = progress
    bar = _ProgressBar(total)
    percentage = num_done / total * 100.0 if total else float("nan")
    bar.set_position(num_done)
    bar.set_message(f"({percentage:.1f} %)")

    for exercise in exercises:
        try:
            finished = _check(exercise, verbose, success_hints)
        except ExerciseFailed:
            finished = False
        if not finished:
            raise VerificationFailed(exercise)
        percentage += 100.0 / total
        bar.inc(1)
        bar.set_message(f"({percentage:.1f} %)")


def _check(exercise: Exercise, verbose: bool, success_hints: bool) -> bool:
    if exercise.mode in (Mode.TEST, Mode.BUILD_SCRIPT):
        return _compile_and_test(exercise, RunMode.INTERACTIVE, verbose, success_hints)
    if exercise.mode is Mode.COMPILE:
        return _compile_and_run_interactively(exercise, success_hints)
    return _compile_only(exercise, success_hints)


def test(exercise: Exercise, verbose: bool) -> None:
    """Compile and run an exercise's test harness; raise ExerciseFailed on failure."""
    _compile_and_test(exercise, RunMode.NON_INTERACTIVE, verbose, False)


def _compile_only(exercise: Exercise, success_hints: bool) -> bool:
    spinner = _Spinner(f"Compiling {exercise}...")
    _compile(exercise, spinner).close()
    spinner.finish_and_clear()
    return prompt_for_completion(exercise, None, success_hints)


def _compile_and_run_interactively(exercise: Exercise, success_hints: bool) -> bool:
    spinner = _Spinner(f"Compiling {exercise}...")
    with _compile(exercise, spinner) as compiled:
        spinner.set_message(f"Running {exercise}...")
        try:
            output = compiled.run()
        except ExecutionError as exc:
            spinner.finish_and_clear()
            ui.warn(f"Ran {exercise} with errors")
            print(exc.output.stdout)
            print(exc.output.stderr)
            raise ExerciseFailed(exercise) from exc
        spinner.finish_and_clear()
        return prompt_for_completion(exercise, output.stdout, success_hints)


def _compile_and_test(
    exercise: Exercise, run_mode: RunMode, verbose: bool, success_hints: bool
) -> bool:
    spinner = _Spinner(f"Testing {exercise}...")
    with _compile(exercise, spinner) as compiled:
        try:
            output = compiled.run()
        except ExecutionError as exc:
            spinner.finish_and_clear()
            ui.warn(f"Testing of {exercise} failed! Please try again. Here's the output:")
            print(exc.output.stdout)
            raise ExerciseFailed(exercise) from exc
        spinner.finish_and_clear()
        if verbose:
            print(output.stdout)
        if run_mode is RunMode.INTERACTIVE:
            return prompt_for_completion(exercise, None, success_hints)
        return True


def _compile(exercise: Exercise, spinner: _Spinner) -> CompiledExercise:
    try:
        return exercise.compile()
    except CompilationError as exc:
        spinner.finish_and_clear()
        ui.warn(f"Compiling of {exercise} failed! Please try again. Here's the output:")
        print(exc.output.stderr)
        raise ExerciseFailed(exercise) from exc


_SUCCESS_TITLES = {
    Mode.COMPILE: "Successfully ran {}!",
    Mode.TEST: "Successfully tested {}!",
    Mode.CLIPPY: "Successfully compiled {}!",
    Mode.BUILD_SCRIPT: "Successfully compiled {}!",
}


def _success_message(mode: Mode, no_emoji: bool) -> str:
    if mode is Mode.COMPILE:
        return "The code is compiling!"
    if mode is Mode.TEST:
        return "The code is compiling, and the tests pass!"
    if mode is Mode.CLIPPY:
        if no_emoji:
            return "The code is compiling, and Clippy is happy!"
        return "The code is compiling, and 📎 Clippy 📎 is happy!"
    return "Build script works!"


def prompt_for_completion(
    exercise: Exercise, prompt_output: str | None, success_hints: bool
) -> bool:
    """Return True if the exercise is done, else print where to continue and return False."""
    state = exercise.state()
    if state.is_done():
        return True

    ui.success(_SUCCESS_TITLES[exercise.mode].format(exercise))

    no_emoji = ui.no_emoji()
    success_msg = _success_message(exercise.mode, no_emoji)
    print()
    if no_emoji:
        print(f"~*~ {success_msg} ~*~")
    else:
        print(f"🎉 🎉  {success_msg} 🎉 🎉")
    print()

    if prompt_output is not None:
        print("Output:")
        print(separator())
        print(prompt_output)
        print(separator())
        print()
    if success_hints:
        print("Hints:")
        print(separator())
        print(exercise.hint)
        print(separator())
        print()

    print("You can keep working on this exercise,")
    print(f"or jump into the next one by removing the {ui.bold('`I AM NOT DONE`')} comment:")
    print()
    for context_line in state.context or ():
        line = ui.bold(context_line.line) if context_line.important else context_line.line
        number = ui.blue(ui.bold(f"{context_line.number:>2}"))
        print(f"{number} {ui.blue('|')}  {line}")

    return False


def separator() -> str:
    return ui.bold("====================")