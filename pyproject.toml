[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "eventsched"
version = "0.1.0"
description = "Coroutine event scheduler with single-thread, pool, dynamic and work-stealing executors and latency benchmarks"
requires-python = ">=3.10"
dependencies = []
keywords = ["events", "scheduler", "coroutines", "executor", "thread-pool", "work-stealing", "benchmark"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
eventsched = "eventsched.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["eventsched"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
