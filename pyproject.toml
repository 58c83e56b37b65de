[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "apaxos"
version = "0.1.0"
description = "Building blocks for a sharded client-balance transaction system: node state, message types, a JSON-over-gRPC dialer, an operator console and MongoDB storage."
requires-python = ">=3.10"
keywords = ["paxos", "consensus", "distributed-systems", "grpc", "transactions", "mongodb"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]
dependencies = [
    "grpcio",
    "pymongo",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["apaxos"]

[tool.hatch.build.targets.sdist]
include = ["apaxos", "tests", "README.md", "pyproject.toml"]

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
ignore_missing_imports = true
