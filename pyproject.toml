[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "humalite"
version = "0.1.0"
description = "HTTP API building blocks: problem-details errors, JSON/CBOR body formats, multipart file validation and a terminal-recording script runner"
requires-python = ">=3.10"
keywords = ["http", "api", "rfc9457", "problem-details", "cbor", "json", "multipart", "asciinema"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "cbor2",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
humalite-record = "humalite.recorder:main"

[tool.hatch.build.targets.wheel]
packages = ["humalite"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
