"""Tools for running, verifying, watching and grading small Rust exercises."""

__version__ = "5.5.1"