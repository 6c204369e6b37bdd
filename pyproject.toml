[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "componentkit"
version = "0.1.0"
description = "Core tooling for building WebAssembly components: terminal output, command options, package ids, lock files and dependency entries"
requires-python = ">=3.10"
keywords = [
    "webassembly",
    "wasm",
    "component",
    "wit",
    "registry",
    "lock-file",
    "semver",
    "build-tools",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]
dependencies = [
    "tomlkit",
    "semver",
    "portalocker",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["componentkit"]

[tool.hatch.build.targets.sdist]
include = [
    "componentkit",
    "tests",
    "pyproject.toml",
    "README.md",
]

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
