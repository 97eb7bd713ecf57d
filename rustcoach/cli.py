"""Command line entry point: listing, running, verifying and grading exercises."""

from __future__ import annotations

import argparse
import json
import subprocess
import sys
import threading
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path

from . import ui
from .exercise import Exercise, load_exercises
from .project import RustAnalyzerProject
from .run import reset, run
from .verify import ExerciseFailed, VerificationFailed, verify
from .watch import WatchStatus, watch

VERSION = "5.5.1"
CHECK_RESULT_PATH = ".github/result/check_result.json"

WELCOME = r"""       welcome to...
  _ __ _   _ ___| |_ ___ ___   __ _  ___| |__
 | '__| | | / __| __/ __/ _ \ / _` |/ __| '_ \
 | |  | |_| \__ \ || (_| (_) | (_| | (__| | | |
 |_|   \__,_|___/\__\___\___/ \__,_|\___|_| |_|"""

DEFAULT_OUT = """Thanks for installing rustcoach!

Is this your first time? Don't worry, rustcoach is made for beginners! Here are
a few notes about how it works:

1. The central concept is that you solve exercises. These exercises usually
   have some sort of syntax error in them, which will cause them to fail
   compilation or testing. Sometimes there's a logic error instead. No matter
   what error, it's your job to find it and fix it! Once it is fixed, the
   exercise compiles and rustcoach moves on to the next exercise.
2. If you run rustcoach in watch mode (which we recommend), it'll automatically
   start with the first exercise. Don't get confused by an error message popping
   up as soon as you start! It is part of the exercise you're supposed to
   solve, so open the exercise file in an editor and start your detective work!
3. If you're stuck on an exercise, there is a helpful hint you can view by typing
   'hint' (in watch mode), or running `rustcoach hint exercise_name`.
4. If you want to use `rust-analyzer` with exercises, which provides features like
   autocompletion, run the command `rustcoach lsp`.

Got all that? Great! To get started, run `rustcoach watch` in order to get the first
exercise. Make sure to have your editor open!"""

FINISH_LINE = """+----------------------------------------------------+
|          You made it to the finish line!           |
+----------------------------------------------------+

We hope you enjoyed learning about the various aspects of Rust!
You can also contribute your own exercises to help the greater community!"""


class ExerciseNotFound(LookupError):
    """Raised when no exercise matches the requested name."""


@dataclass
class ExerciseResult:
    name: str
    result: bool


@dataclass
class ExerciseStatistics:
    total_exercations: int
    total_succeeds: int = 0
    total_failures: int = 0
    total_time: int = 0


@dataclass
class ExerciseCheckList:
    statistics: ExerciseStatistics
    exercises: list[ExerciseResult] = field(default_factory=list)
    user_name: str | None = None

    def to_json(self) -> str:
        """Serialise the check list as indented JSON."""
        data = {
            "exercises": [asdict(result) for result in self.exercises],
            "user_name": self.user_name,
            "statistics": asdict(self.statistics),
        }
        return json.dumps(data, indent=2, ensure_ascii=False)


def find_exercise(name: str, exercises: Sequence[Exercise]) -> Exercise:
    """Return the named exercise, or the first unfinished one for ``next``."""
    if name == "next":
        found = next((e for e in exercises if not e.looks_done()), None)
        if found is None:
            raise ExerciseNotFound(
                "🎉 Congratulations! You have done all the exercises!\n"
                "🔚 There are no more exercises to do next!"
            )
        return found
    found = next((e for e in exercises if e.name == name), None)
    if found is None:
        raise ExerciseNotFound(f"No exercise found for '{name}'!")
    return found


def list_exercises(
    exercises: Sequence[Exercise],
    paths: bool,
    names: bool,
    filter_text: str | None,
    unsolved: bool,
    solved: bool,
) -> list[str]:
    """Return the lines of the exercise listing, ending with the progress line."""
    lines = []
    if not paths and not names:
        lines.append(f"{'Name':<17}\t{'Path':<46}\t{'Status':<7}")
    filters = [f for f in (filter_text or "").lower().split(",") if f.strip()]
    done_count = 0
    for exercise in exercises:
        fname = str(exercise.path)
        matches_filter = any(f in exercise.name or f in fname for f in filters)
        done = exercise.looks_done()
        if done:
            done_count += 1
        status = "Done" if done else "Pending"
        wanted = (done and solved) or (not done and unsolved) or (not solved and not unsolved)
        if wanted and (matches_filter or filter_text is None):
            if paths:
                lines.append(fname)
            elif names:
                lines.append(exercise.name)
            else:
                lines.append(f"{exercise.name:<17}\t{fname:<46}\t{status:<7}")
    total = len(exercises)
    percentage = done_count / total * 100.0 if total else float("nan")
    lines.append(
        f"Progress: You completed {done_count} / {total} exercises ({percentage:.1f} %)."
    )
    return lines


def cicv_verify(
    exercises: Sequence[Exercise], output_path: str | Path = CHECK_RESULT_PATH
) -> ExerciseCheckList:
    """Run every exercise, record each outcome and write the results as JSON."""
    started = int(time.time())
    total = len(exercises)
    check_list = ExerciseCheckList(statistics=ExerciseStatistics(total_exercations=total))
    lock = threading.Lock()

    def grade(exercise: Exercise, task_start: int) -> None:
        try:
            run(exercise, True)
            passed = True
        except ExerciseFailed:
            passed = False
        with lock:
            if passed:
                check_list.statistics.total_succeeds += 1
                print(f"{exercise.name}执行成功")
            else:
                print(f"{exercise.name}执行失败")
            print(f"总的题目数: {total}")
            print(f"当前做正确的题目数: {check_list.statistics.total_succeeds}")
            print(f"当前修改试卷耗时: {int(time.time()) - task_start} s")
            check_list.exercises.append(ExerciseResult(name=exercise.name, result=passed))
            if not passed:
                check_list.statistics.total_failures += 1

    with ThreadPoolExecutor() as pool:
        futures = [pool.submit(grade, e, int(time.time())) for e in exercises]
        for future in futures:
            future.result()

    total_time = int(time.time()) - started
    print(
        "===============================试卷批改完成,总耗时: "
        f"{total_time} s; =================================="
    )
    check_list.statistics.total_time = total_time
    Path(output_path).write_text(check_list.to_json(), encoding="utf-8")
    return check_list


def rustc_exists() -> bool:
    """Whether ``rustc --version`` can be started and succeeds."""
    try:
        result = subprocess.run(
            ["rustc", "--version"], stdout=subprocess.DEVNULL, check=False
        )
    except OSError:
        return False
    return result.returncode == 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rustcoach",
        description="A collection of small exercises to get you used to "
        "writing and reading Rust code",
    )
    parser.add_argument("--nocapture", action="store_true",
                        help="show outputs from the test exercises")
    parser.add_argument("-v", "--version", action="store_true",
                        help="show the executable version")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("verify", help="verifies all exercises in the recommended order")
    watch_parser = sub.add_parser("watch", help="reruns `verify` when files were edited")
    watch_parser.add_argument("--success-hints", action="store_true",
                              help="show hints on success")
    for name, text in (
        ("run", "runs/tests a single exercise"),
        ("reset", 'resets a single exercise using "git stash -- <filename>"'),
        ("hint", "returns a hint for the given exercise"),
    ):
        command = sub.add_parser(name, help=text)
        command.add_argument("name", nargs="?", help="the name of the exercise")
    list_parser = sub.add_parser("list", help="lists the available exercises")
    list_parser.add_argument("-p", "--paths", action="store_true",
                             help="show only the paths of the exercises")
    list_parser.add_argument("-n", "--names", action="store_true",
                             help="show only the names of the exercises")
    list_parser.add_argument("-f", "--filter", default=None,
                             help="comma separated patterns to match exercise names")
    list_parser.add_argument("-u", "--unsolved", action="store_true",
                             help="display only exercises not yet solved")
    list_parser.add_argument("-s", "--solved", action="store_true",
                             help="display only exercises that have been solved")
    sub.add_parser("lsp", help="enable rust-analyzer for exercises")
    sub.add_parser("cicvverify", help="grade all exercises and write the results")
    return parser


def _lsp() -> int:
    project = RustAnalyzerProject()
    project.get_sysroot_src()
    project.exercises_to_json()
    if not project.crates:
        print("Failed find any exercises, make sure you're in the `rustcoach` folder")
        return 0
    try:
        project.write_to_disk()
    except OSError:
        print("Failed to write rust-project.json to disk for rust-analyzer")
        return 0
    print("Successfully generated rust-project.json")
    print("rust-analyzer will now parse exercises, restart your language server or editor")
    return 0


def _watch(exercises: list[Exercise], verbose: bool, success_hints: bool) -> int:
    try:
        status = watch(exercises, verbose, success_hints)
    except OSError as exc:
        print(f"Error: Could not watch your progress. Error message was {exc!r}.")
        print("Most likely you've run out of disk space or your 'inotify limit' "
              "has been reached.")
        return 1
    if status is WatchStatus.FINISHED:
        emoji = "★" if ui.no_emoji() else "🎉"
        print(f"{emoji} All exercises completed! {emoji}")
        print(f"\n{FINISH_LINE}\n")
    else:
        print("We hope you're enjoying learning about Rust!")
        print("If you want to continue working on the exercises at a later point, "
              "you can simply run `rustcoach watch` again")
    return 0


def _print_list(lines: list[str]) -> int:
    try:
        for line in lines:
            sys.stdout.write(line + "\n")
        sys.stdout.flush()
    except BrokenPipeError:
        return 0
    except OSError:
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line tool and return its exit status."""
    args = _build_parser().parse_args(argv)

    if args.version:
        print(f"v{VERSION}")
        return 0

    if args.command is None:
        print(f"\n{WELCOME}\n")

    if not Path("info.toml").exists():
        print(f"{sys.argv[0]} must be run from the rustcoach directory")
        print("Try `cd rustcoach/`!")
        return 1

    if not rustc_exists():
        print("We cannot find `rustc`.")
        print("Try running `rustc --version` to diagnose your problem.")
        print("For instructions on how to install Rust, check the README.")
        return 1

    exercises = load_exercises("info.toml")
    verbose = args.nocapture

    if args.command is None:
        print(f"{DEFAULT_OUT}\n")
        return 0

    if args.command in ("run", "reset", "hint"):
        if args.name is None:
            print("Required positional arguments not provided:\n    name", file=sys.stderr)
            return 1
        try:
            exercise = find_exercise(args.name, exercises)
        except ExerciseNotFound as exc:
            print(exc)
            return 1

    match args.command:
        case "list":
            lines = list_exercises(
                exercises, args.paths, args.names, args.filter, args.unsolved, args.solved
            )
            return _print_list(lines)
        case "run":
            try:
                run(exercise, verbose)
            except ExerciseFailed:
                return 1
        case "reset":
            try:
                reset(exercise)
            except ExerciseFailed:
                return 1
        case "hint":
            print(exercise.hint)
        case "verify":
            try:
                verify(exercises, (0, len(exercises)), verbose, False)
            except VerificationFailed:
                return 1
        case "cicvverify":
            cicv_verify(exercises)
        case "lsp":
            return _lsp()
        case "watch":
            return _watch(exercises, verbose, args.success_hints)
    return 0