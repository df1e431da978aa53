[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "webreactor"
version = "1.0.0"
description = "Reactor building blocks for HTTP servers (readiness poller, channels, connection timers, thread pool, asynchronous logging) and a web benchmark tool"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "reactor", "epoll", "poller", "timer", "thread-pool", "benchmark", "logging"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: System :: Benchmark",
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
webbench = "webreactor.webbench:main"

[tool.hatch.build.targets.wheel]
packages = ["webreactor"]

[tool.hatch.build.targets.sdist]
include = ["webreactor", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
