[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tsbench"
version = "0.1.0"
description = "Building blocks for benchmarking time-series database queries, with result reporting to InfluxDB"
requires-python = ">=3.10"
keywords = ["benchmark", "time-series", "influxdb", "cassandra", "opentsdb", "telemetry", "line-protocol"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Benchmark",
    "Topic :: Database",
]
dependencies = [
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
tsbench-void-server = "tsbench.void_server:main"

[tool.hatch.build.targets.wheel]
packages = ["tsbench"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
