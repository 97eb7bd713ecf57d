"""Running a single exercise and resetting it."""

from __future__ import annotations

import subprocess

from . import ui
from .exercise import CompilationError, ExecutionError, Exercise, Mode
from .verify import ExerciseFailed, _Spinner, test


def run(exercise: Exercise, verbose: bool) -> None:
    """Compile and run, or test, one exercise; raise ExerciseFailed on failure."""
    if exercise.mode in (Mode.TEST, Mode.BUILD_SCRIPT):
        test(exercise, verbose)
    else:
        compile_and_run(exercise)


def reset(exercise: Exercise) -> subprocess.Popen:
    """Start ``git stash -- <path>`` for the exercise and return the process."""
    try:
        return subprocess.Popen(["git", "stash", "--", str(exercise.path)])
    except OSError as exc:
        raise ExerciseFailed(exercise) from exc


def compile_and_run(exercise: Exercise) -> None:
    """Compile an exercise binary, run it and show its output."""
    spinner = _Spinner(f"Compiling {exercise}...")
    try:
        compiled = exercise.compile()
    except CompilationError as exc:
        spinner.finish_and_clear()
        ui.warn(f"Compilation of {exercise} failed!, Compiler error message:\n")
        print(exc.output.stderr)
        raise ExerciseFailed(exercise) from exc

    with compiled:
        spinner.set_message(f"Running {exercise}...")
        try:
            output = compiled.run()
        except ExecutionError as exc:
            spinner.finish_and_clear()
            print(exc.output.stdout)
            print(exc.output.stderr)
            ui.warn(f"Ran {exercise} with errors")
            raise ExerciseFailed(exercise) from exc
        spinner.finish_and_clear()
        print(output.stdout)
        ui.success(f"Successfully ran {exercise}")