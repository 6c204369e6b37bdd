"""Tooling for building WebAssembly components: terminal output, command options, package ids, lock files and dependency entries."""

__version__ = "0.1.0"

__all__ = [
    "command",
    "dependency",
    "ids",
    "lock",
    "terminal",
]