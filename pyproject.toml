[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "planter"
version = "0.1.0"
description = "Phase plans: a data model, plan diffing, phase execution, Redis-backed state and logs, a NATS session client and HTTP route handlers"
requires-python = ">=3.10"
keywords = ["orchestration", "plan", "phases", "diff", "redis", "nats", "starlette"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "starlette",
    "redis",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "httpx",
]

[tool.hatch.build.targets.wheel]
packages = ["planter"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
