# rustcoach

A command-line companion for working through a collection of small Rust
exercises. It compiles, tests and lints each exercise with `rustc`, `cargo`
and Clippy, tells you which ones are finished, and can watch your files and
re-check them as you edit.

## Requirements

- Python 3.11 or later
- A Rust toolchain with `rustc` on your `PATH` (and `cargo` for Clippy and
  build-script exercises); every command except `--version` checks that
  `rustc --version` runs before doing anything else
- `git`, for `rustcoach reset`

## Installation

```
pip install .
```

## Getting started

Run the commands from the directory that holds `info.toml` and the
`exercises/` folder; anywhere else, `rustcoach` prints a message and exits
with status 1. `info.toml` lists the exercises in the recommended order under
an `exercises` array; each entry needs a `name`, a `path`, a `mode`
(`compile`, `test`, `clippy` or `buildscript`) and a `hint`.

An exercise counts as unfinished while its source still contains a `//` or
`///` comment line reading `I AM NOT DONE`. Remove that comment to move on.

```
rustcoach              # welcome text and a short introduction
rustcoach --version    # print the version
```

## Commands

```
rustcoach watch                 # verify, then re-verify whenever a file below ./exercises changes
rustcoach watch --success-hints # also show the hint of an exercise that passes but is not marked done
rustcoach verify                # verify all exercises in order, stop at the first failure
rustcoach run <name>            # compile and run (or test) one exercise
rustcoach run next              # run the first unfinished exercise
rustcoach hint <name>           # print the hint for an exercise
rustcoach reset <name>          # start `git stash -- <path>` for the exercise
rustcoach list                  # table of exercises with their status
rustcoach lsp                   # write rust-project.json for rust-analyzer
rustcoach cicvverify            # grade every exercise and write a JSON report
```

Pass `--nocapture` before the command to see the output of test exercises:

```
rustcoach --nocapture run <name>
```

`run`, `verify` and `hint` exit with status 1 when the exercise is unknown
or fails to compile, run or pass its tests.

### Listing

`rustcoach list` accepts:

- `-p`, `--paths` – print only the paths
- `-n`, `--names` – print only the names
- `-f`, `--filter TEXT` – comma-separated patterns matched against names and paths
- `-u`, `--unsolved` – only unfinished exercises
- `-s`, `--solved` – only finished exercises

The last line reports your overall progress.

### Watch mode

While watching, type a command and press Enter:

- `hint` – show the hint for the exercise that is failing
- `clear` – clear the screen
- `quit` – leave watch mode
- `!<cmd>` – run a command, e.g. `!rustc --explain E0381`
- `help` – list these commands

### Grading report

`rustcoach cicvverify` runs every exercise in parallel threads, prints a line
per result and writes a summary with per-exercise results, success and
failure counts and the total time in seconds to
`.github/result/check_result.json`. That directory must already exist.

### rust-analyzer

`rustcoach lsp` adds a crate for every `.rs` file below `./exercises` and
writes `./rust-project.json`. The standard library source path comes from
`RUST_SRC_PATH` if set, otherwise from `rustc --print sysroot`.

## Using it from Python

- `rustcoach.exercise.load_exercises(path)` reads an exercise list;
  `Exercise.state()` and `Exercise.looks_done()` report completion, and
  `Exercise.compile()` returns a `CompiledExercise` whose `run()` executes it
  (`CompilationError` and `ExecutionError` carry the captured output).
- `rustcoach.verify.verify(exercises, progress, verbose, success_hints)`
  raises `VerificationFailed` with the first unfinished exercise.
- `rustcoach.run.run(exercise, verbose)` raises `ExerciseFailed` on failure.
- `rustcoach.cli.list_exercises(...)`, `find_exercise(...)` and
  `cicv_verify(...)` back the commands of the same names.

## Environment

Set `NO_EMOJI` to any value to use plain-text markers instead of emoji.
Set `RUST_SRC_PATH` to override the standard library source location used
by `rustcoach lsp`.

## What it does not do

rustcoach ships no exercises and no `info.toml`; it works on an exercise
collection you already have.