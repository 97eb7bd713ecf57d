import json
import subprocess
import threading
from pathlib import Path
from unittest import mock

import pytest

from rustcoach.cli import (
    ExerciseCheckList,
    ExerciseNotFound,
    ExerciseResult,
    ExerciseStatistics,
    cicv_verify,
    find_exercise,
    list_exercises,
    main,
    rustc_exists,
)
from rustcoach.exercise import Exercise, Mode

FILES = {
    "success": {
        "compSuccess.rs": ("compile", "", "fn main() {\n}\n"),
        "testSuccess.rs": (
            "test",
            "",
            '#[test]\nfn passing() {\n    println!("THIS TEST TOO SHALL PASS");\n}\n',
        ),
    },
    "failure": {
        "compFailure.rs": ("compile", "", "fn main() {\n    let\n}\n"),
        "testFailure.rs": ("test", "Hello!", "#[test]\nfn passing() {\n    asset!(true);\n}\n"),
        "testNotPassed.rs": ("test", "", "#[test]\nfn not_passing() {\n    assert!(false);\n}\n"),
    },
    "state": {
        "pending_exercise.rs": (
            "compile", "", "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n"
        ),
        "pending_test_exercise.rs": (
            "test", "", "// I AM NOT DONE\n\n#[test]\nfn it_works() {}\n"
        ),
        "finished_exercise.rs": ("compile", "", "// fake_exercise\n\nfn main() {\n\n}\n"),
    },
}


def make_fixture(root: Path, kind: str) -> Path:
    directory = root / kind
    directory.mkdir()
    entries = []
    for filename, (mode, hint, body) in FILES[kind].items():
        (directory / filename).write_text(body)
        entries.append(
            f'[[exercises]]\nname = "{filename[:-3]}"\npath = "{filename}"\n'
            f'mode = "{mode}"\nhint = "{hint}"\n'
        )
    (directory / "info.toml").write_text("\n".join(entries))
    return directory


class FakeToolchain:
    """Stands in for rustc and the compiled binaries."""

    def __init__(self):
        self.last_source = {}

    def __call__(self, args, **kwargs):
        args = list(args)
        if args[0] == "rustc":
            if "--version" in args:
                return subprocess.CompletedProcess(args, 0)
            source = next(a for a in args if a.endswith(".rs"))
            self.last_source[threading.get_ident()] = source
            if "Failure" in source:
                return subprocess.CompletedProcess(args, 1, b"", b"error: expected pattern")
            return subprocess.CompletedProcess(args, 0, b"", b"")
        source = self.last_source.get(threading.get_ident(), "")
        code = 101 if "NotPassed" in source else 0
        return subprocess.CompletedProcess(args, code, b"THIS TEST TOO SHALL PASS\n", b"")


@pytest.fixture
def toolchain():
    fake = FakeToolchain()
    with mock.patch("subprocess.run", side_effect=fake):
        yield fake


def exercise(tmp_path, name, body, mode=Mode.COMPILE, hint=""):
    path = tmp_path / f"{name}.rs"
    path.write_text(body)
    return Exercise(name=name, path=path, mode=mode, hint=hint)


@pytest.fixture
def two(tmp_path):
    done = exercise(tmp_path, "alpha", "fn main() {}\n")
    pending = exercise(tmp_path, "beta", "// I AM NOT DONE\nfn main() {}\n")
    return [done, pending]


def test_find_exercise_by_name(two):
    assert find_exercise("beta", two).name == "beta"


def test_find_exercise_next_is_first_pending(two):
    assert find_exercise("next", two).name == "beta"


def test_find_exercise_next_when_all_done(tmp_path):
    exercises = [exercise(tmp_path, "alpha", "fn main() {}\n")]
    with pytest.raises(ExerciseNotFound, match="no more exercises"):
        find_exercise("next", exercises)


def test_find_exercise_unknown(two):
    with pytest.raises(ExerciseNotFound, match="No exercise found for 'gamma'!"):
        find_exercise("gamma", two)


def test_list_has_header_and_progress(two):
    lines = list_exercises(two, False, False, None, False, False)
    assert lines[0].split("\t")[0].strip() == "Name"
    assert lines[-1] == "Progress: You completed 1 / 2 exercises (50.0 %)."
    assert "Done" in lines[1] and "Pending" in lines[2]


def test_list_solved_only(two):
    lines = list_exercises(two, False, True, None, False, True)
    assert lines[:-1] == ["alpha"]


def test_list_unsolved_only(two):
    lines = list_exercises(two, False, True, None, True, False)
    assert lines[:-1] == ["beta"]


def test_list_paths(two):
    lines = list_exercises(two, True, False, None, False, False)
    assert lines[:-1] == [str(two[0].path), str(two[1].path)]


def test_list_filter(two):
    lines = list_exercises(two, False, True, "BET, zzz", False, False)
    assert lines[:-1] == ["beta"]


def test_list_empty_filter_lists_nothing(two):
    lines = list_exercises(two, False, True, "", False, False)
    assert len(lines) == 1


def test_check_list_json():
    check_list = ExerciseCheckList(
        statistics=ExerciseStatistics(total_exercations=1, total_succeeds=1, total_time=3),
        exercises=[ExerciseResult(name="alpha", result=True)],
    )
    data = json.loads(check_list.to_json())
    assert data == {
        "exercises": [{"name": "alpha", "result": True}],
        "user_name": None,
        "statistics": {
            "total_exercations": 1,
            "total_succeeds": 1,
            "total_failures": 0,
            "total_time": 3,
        },
    }
    assert '\n  "exercises"' in check_list.to_json()


def test_cicv_verify_records_results(tmp_path, toolchain):
    exercises = [
        exercise(tmp_path, "good", "fn main() {}\n"),
        exercise(tmp_path, "compFailure", "fn main() { let }\n"),
    ]
    out = tmp_path / "result.json"
    result = cicv_verify(exercises, out)
    assert result.statistics.total_succeeds == 1
    assert result.statistics.total_failures == 1
    data = json.loads(out.read_text())
    assert {(e["name"], e["result"]) for e in data["exercises"]} == {
        ("good", True),
        ("compFailure", False),
    }


def test_rustc_exists_true(toolchain):
    assert rustc_exists() is True


def test_rustc_exists_missing():
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("rustc")):
        assert rustc_exists() is False


def test_version(capsys):
    assert main(["--version"]) == 0
    assert capsys.readouterr().out == "v5.5.1\n"


def test_runs_without_arguments(tmp_path, monkeypatch, toolchain, capsys):
    monkeypatch.chdir(make_fixture(tmp_path, "success"))
    assert main([]) == 0
    assert "Thanks for installing" in capsys.readouterr().out


def test_fails_when_in_wrong_dir(tmp_path, monkeypatch, toolchain):
    monkeypatch.chdir(tmp_path)
    assert main([]) == 1


def test_fails_without_rustc(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(make_fixture(tmp_path, "success"))
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("rustc")):
        assert main(["list"]) == 1
    assert "We cannot find `rustc`." in capsys.readouterr().out


def test_verify_all_success(tmp_path, monkeypatch, toolchain):
    monkeypatch.chdir(make_fixture(tmp_path, "success"))
    assert main(["verify"]) == 0


def test_verify_fails_if_some_fails(tmp_path, monkeypatch, toolchain):
    monkeypatch.chdir(make_fixture(tmp_path, "failure"))
    assert main(["verify"]) == 1


@pytest.mark.parametrize(
    "kind, name, code",
    [
        ("success", "compSuccess", 0),
        ("failure", "compFailure", 1),
        ("success", "testSuccess", 0),
        ("failure", "testFailure", 1),
        ("failure", "testNotPassed.rs", 1),
        ("failure", "testNotPassed", 1),
        ("failure", "compNoExercise.rs", 1),
    ],
)
def test_run_single(tmp_path, monkeypatch, toolchain, kind, name, code):
    monkeypatch.chdir(make_fixture(tmp_path, kind))
    assert main(["run", name]) == code


def test_run_single_test_no_filename(tmp_path, monkeypatch, toolchain, capsys):
    monkeypatch.chdir(make_fixture(tmp_path, "success"))
    assert main(["run"]) == 1
    assert "positional arguments not provided" in capsys.readouterr().err


def test_reset_no_exercise(tmp_path, monkeypatch, toolchain, capsys):
    monkeypatch.chdir(make_fixture(tmp_path, "success"))
    assert main(["reset"]) == 1
    assert "positional arguments not provided" in capsys.readouterr().err


def test_get_hint_for_single_test(tmp_path, monkeypatch, toolchain, capsys):
    monkeypatch.chdir(make_fixture(tmp_path, "failure"))
    assert main(["hint", "testFailure"]) == 0
    assert capsys.readouterr().out == "Hello!\n"


@pytest.mark.parametrize("name", ["pending_exercise", "pending_test_exercise"])
def test_run_exercise_does_not_prompt(tmp_path, monkeypatch, toolchain, capsys, name):
    monkeypatch.chdir(make_fixture(tmp_path, "state"))
    assert main(["run", name]) == 0
    assert "I AM NOT DONE" not in capsys.readouterr().out


def test_run_single_test_success_with_output(tmp_path, monkeypatch, toolchain, capsys):
    monkeypatch.chdir(make_fixture(tmp_path, "success"))
    assert main(["--nocapture", "run", "testSuccess"]) == 0
    assert "THIS TEST TOO SHALL PASS" in capsys.readouterr().out


def test_run_single_test_success_without_output(tmp_path, monkeypatch, toolchain, capsys):
    monkeypatch.chdir(make_fixture(tmp_path, "success"))
    assert main(["run", "testSuccess"]) == 0
    assert "THIS TEST TOO SHALL PASS" not in capsys.readouterr().out


def test_list_no_pending(tmp_path, monkeypatch, toolchain, capsys):
    monkeypatch.chdir(make_fixture(tmp_path, "success"))
    assert main(["list"]) == 0
    assert "Pending" not in capsys.readouterr().out


def test_list_both_done_and_pending(tmp_path, monkeypatch, toolchain, capsys):
    monkeypatch.chdir(make_fixture(tmp_path, "state"))
    assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert "Done" in out and "Pending" in out


def test_list_without_pending(tmp_path, monkeypatch, toolchain, capsys):
    monkeypatch.chdir(make_fixture(tmp_path, "state"))
    assert main(["list", "--solved"]) == 0
    assert "Pending" not in capsys.readouterr().out


def test_list_without_done(tmp_path, monkeypatch, toolchain, capsys):
    monkeypatch.chdir(make_fixture(tmp_path, "state"))
    assert main(["list", "--unsolved"]) == 0
    assert "Done" not in capsys.readouterr().out


def test_cicvverify_command(tmp_path, monkeypatch, toolchain):
    directory = make_fixture(tmp_path, "failure")
    (directory / ".github" / "result").mkdir(parents=True)
    monkeypatch.chdir(directory)
    assert main(["--nocapture", "cicvverify"]) == 0
    data = json.loads((directory / ".github/result/check_result.json").read_text())
    assert data["statistics"]["total_exercations"] == 3
    assert data["statistics"]["total_succeeds"] + data["statistics"]["total_failures"] == 3
    assert data["statistics"]["total_failures"] == 3