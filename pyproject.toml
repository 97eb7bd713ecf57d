[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rustcoach"
version = "5.5.1"
description = "Run, verify and track small Rust exercises from the command line"
requires-python = ">=3.11"
dependencies = [
    "watchdog",
]
keywords = ["rust", "exercises", "learning", "education", "rustc", "clippy"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
rustcoach = "rustcoach.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["rustcoach"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"
