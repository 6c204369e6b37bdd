"""WIT package dependencies as they appear in configuration files."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .ids import PackageId, VersionReq
from .lock import DEFAULT_REGISTRY_NAME

_ENTRY_FIELDS = ("path", "package", "version", "registry")


def find_url(
    name: str | None,
    urls: Mapping[str, str],
    default: str | None = None,
) -> str:
    """Return the URL of the named registry, or of the default registry."""
    name = name if name is not None else DEFAULT_REGISTRY_NAME
    url = urls.get(name)
    if url is not None:
        return str(url)
    if name != DEFAULT_REGISTRY_NAME:
        raise ValueError(f"component registry `{name}` does not exist in the configuration")
    if default is None:
        raise ValueError("a default component registry has not been set")
    return default


@dataclass(frozen=True)
class RegistryPackage:
    """A reference to a package in a component registry.

    When ``id`` is ``None`` the id the dependency is listed under is used;
    when ``registry`` is ``None`` the default registry is used.
    """

    version: VersionReq
    id: PackageId | None = None
    registry: str | None = None

    @classmethod
    def parse(cls, text: str) -> "RegistryPackage":
        """Parse a bare version requirement into a package reference."""
        return cls(VersionReq.parse(text))


@dataclass(frozen=True)
class LocalDependency:
    """A dependency on a local directory or file."""

    path: Path

    def __post_init__(self) -> None:
        if not isinstance(self.path, Path):
            object.__setattr__(self, "path", Path(self.path))


Dependency = Union[RegistryPackage, LocalDependency]


def _field(entry: Mapping, key: str, kind: type) -> object | None:
    if key not in entry:
        return None
    value = entry[key]
    if not isinstance(value, kind):
        raise ValueError(f"invalid type for field `{key}`: expected a string")
    return value


def _parse_entry(entry: Mapping) -> Dependency:
    for key in entry:
        if key not in _ENTRY_FIELDS:
            expected = ", ".join(f"`{name}`" for name in _ENTRY_FIELDS)
            raise ValueError(f"unknown field `{key}`, expected one of {expected}")

    path = _field(entry, "path", (str, os.PathLike))
    package_text = _field(entry, "package", str)
    version_text = _field(entry, "version", str)
    registry = _field(entry, "registry", str)

    package = PackageId.parse(str(package_text)) if package_text is not None else None
    version = VersionReq.parse(str(version_text)) if version_text is not None else None
    registry = str(registry) if registry is not None else None

    if path is not None:
        if package is not None:
            raise ValueError(
                "cannot specify both `path` and `package` fields in a dependency entry"
            )
        if version is not None:
            raise ValueError(
                "cannot specify both `path` and `version` fields in a dependency entry"
            )
        if registry is not None:
            raise ValueError(
                "cannot specify both `path` and `registry` fields in a dependency entry"
            )
        return LocalDependency(Path(path))

    if version is not None:
        return RegistryPackage(version, package, registry)
    if package is None:
        raise ValueError("missing field `package`")
    raise ValueError("missing field `version`")


def parse_dependency(value: object) -> Dependency:
    """Parse a dependency from a version string or a table of fields."""
    if isinstance(value, str):
        return RegistryPackage.parse(value)
    if isinstance(value, Mapping):
        return _parse_entry(value)
    raise ValueError("invalid dependency: expected a string or a table")


def _version_text(version: VersionReq) -> str:
    return str(version).lstrip("^")


def dependency_to_toml(dependency: Dependency) -> str | dict[str, str]:
    """Convert a dependency to the string or table used in configuration files."""
    if isinstance(dependency, RegistryPackage):
        if dependency.id is None and dependency.registry is None:
            return _version_text(dependency.version)
        table: dict[str, str] = {}
        if dependency.id is not None:
            table["package"] = str(dependency.id)
        table["version"] = _version_text(dependency.version)
        if dependency.registry is not None:
            table["registry"] = dependency.registry
        return table
    if isinstance(dependency, LocalDependency):
        return {"path": str(dependency.path)}
    raise TypeError(f"not a dependency: {dependency!r}")