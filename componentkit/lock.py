"""The dependency lock file and an advisory file lock."""

from __future__ import annotations

import bisect
import errno
import io
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

import portalocker
import tomlkit
import tomlkit.exceptions
from semver import Version

from .ids import PackageId, VersionReq

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_NAME = "default"
LOCK_FILE_VERSION = 1

_DIGEST = re.compile(r"sha256:[0-9a-f]{64}")


def _check_digest(digest: str) -> str:
    if not isinstance(digest, str) or not _DIGEST.fullmatch(digest):
        raise ValueError(f"invalid content digest `{digest}`")
    return digest


@dataclass
class LockedPackageVersion:
    """A locked version of a package and the requirement that selected it."""

    requirement: str
    version: Version
    digest: str

    def __post_init__(self) -> None:
        if isinstance(self.version, str):
            self.version = Version.parse(self.version)
        _check_digest(self.digest)

    def key(self) -> str:
        """The sort key within a package's versions."""
        return self.requirement


@dataclass
class LockedPackage:
    """A package in the lock file with all of its locked versions."""

    id: PackageId
    registry: str | None = None
    versions: list[LockedPackageVersion] = field(default_factory=list)

    def __post_init__(self) -> None:
        if isinstance(self.id, str):
            self.id = PackageId.parse(self.id)

    def key(self) -> tuple[PackageId, str]:
        """The sort key within the lock file's packages."""
        return (self.id, self.registry if self.registry is not None else DEFAULT_REGISTRY_NAME)


def _expect(data: dict, key: str, kind: type, required: bool = True) -> Any:
    if key not in data:
        if required:
            raise ValueError(f"missing field `{key}`")
        return None
    value = data[key]
    if not isinstance(value, kind) or isinstance(value, bool) and kind is not bool:
        raise ValueError(f"field `{key}` has the wrong type")
    return value


def _version_from(data: Any) -> LockedPackageVersion:
    if not isinstance(data, dict):
        raise ValueError("expected a table for a package version")
    return LockedPackageVersion(
        requirement=_expect(data, "requirement", str),
        version=Version.parse(_expect(data, "version", str)),
        digest=_expect(data, "digest", str),
    )


def _package_from(data: Any) -> LockedPackage:
    if not isinstance(data, dict):
        raise ValueError("expected a table for a package")
    versions = _expect(data, "version", list, required=False) or []
    return LockedPackage(
        id=PackageId.parse(_expect(data, "id", str)),
        registry=_expect(data, "registry", str, required=False),
        versions=[_version_from(item) for item in versions],
    )


@dataclass
class LockFile:
    """Resolved dependency information from a previous build.

    Packages are kept sorted by their key.
    """

    packages: list[LockedPackage] = field(default_factory=list)
    version: int = LOCK_FILE_VERSION

    @classmethod
    def read(cls, file: IO) -> "LockFile":
        """Read a lock file from a text or binary file object."""
        contents = file.read()
        if isinstance(contents, bytes):
            contents = contents.decode("utf-8")
        try:
            data = tomlkit.parse(contents).unwrap()
        except tomlkit.exceptions.TOMLKitError as exc:
            raise ValueError(f"failed to parse lock file: {exc}") from exc

        if "version" not in data:
            raise ValueError("missing file format version")
        version = data["version"]
        if not isinstance(version, int) or isinstance(version, bool):
            raise ValueError("file format version is not an integer")
        if version != LOCK_FILE_VERSION:
            raise ValueError(f"unsupported file format version {version}")

        try:
            packages = _expect(data, "package", list, required=False) or []
            return cls([_package_from(item) for item in packages], version)
        except (ValueError, TypeError) as exc:
            raise ValueError(f"invalid file format: {exc}") from exc

    def to_toml(self) -> str:
        """Render the lock file contents as TOML, without the header."""
        doc = tomlkit.document()
        doc.add("version", self.version)
        if self.packages:
            packages = tomlkit.aot()
            for package in self.packages:
                table = tomlkit.table()
                table.add("id", str(package.id))
                if package.registry is not None:
                    table.add("registry", package.registry)
                if package.versions:
                    versions = tomlkit.aot()
                    for locked in package.versions:
                        entry = tomlkit.table()
                        entry.add("requirement", locked.requirement)
                        entry.add("version", str(locked.version))
                        entry.add("digest", locked.digest)
                        versions.append(entry)
                    table.add("version", versions)
                packages.append(table)
            doc.add("package", packages)
        return tomlkit.dumps(doc)

    def write(self, file: IO, app: str) -> None:
        """Replace the file's contents with this lock file, headed by a comment naming ``app``."""
        text = (
            f"# This file is automatically generated by {app}.\n"
            "# It is not intended for manual editing.\n"
            + self.to_toml()
        )
        file.seek(0)
        file.truncate()
        file.write(text if isinstance(file, io.TextIOBase) else text.encode("utf-8"))


class LockFileResolver:
    """Looks up locked versions of packages."""

    def __init__(self, lock_file: LockFile) -> None:
        self.lock_file = lock_file

    def resolve(
        self, registry: str, id: PackageId, requirement: VersionReq | str
    ) -> LockedPackageVersion | None:
        """Return the locked version for a requirement, or ``None`` if not locked."""
        packages = self.lock_file.packages
        target = (id, registry)
        index = bisect.bisect_left(packages, target, key=LockedPackage.key)
        if index < len(packages) and packages[index].key() == target:
            versions = packages[index].versions
            wanted = str(requirement)
            pos = bisect.bisect_left(versions, wanted, key=LockedPackageVersion.key)
            if pos < len(versions) and versions[pos].requirement == wanted:
                locked = versions[pos]
                logger.info(
                    "dependency package `%s` from registry `%s` with requirement `%s` "
                    "was resolved by the lock file to version %s",
                    id, registry, requirement, locked.version,
                )
                return locked

        logger.info(
            "dependency package `%s` from registry `%s` with requirement `%s` "
            "was not in the lock file",
            id, registry, requirement,
        )
        return None


def _is_on_nfs_mount(path: Path) -> bool:
    if not sys.platform.startswith("linux"):
        return False
    try:
        mounts = Path("/proc/self/mounts").read_text()
    except OSError:
        return False
    target = os.path.realpath(path)
    best, fstype = "", ""
    for line in mounts.splitlines():
        fields = line.split()
        if len(fields) < 3:
            continue
        mount = fields[1].replace("\\040", " ")
        prefix = mount.rstrip("/") + "/"
        if (target == mount or target.startswith(prefix)) and len(mount) > len(best):
            best, fstype = mount, fields[2]
    return fstype == "nfs" or fstype == "nfs4"


def _is_unsupported(exc: BaseException) -> bool:
    unsupported = {errno.ENOTSUP, errno.EOPNOTSUPP, errno.ENOSYS}
    for candidate in (exc.__cause__, *exc.args):
        if isinstance(candidate, OSError):
            return candidate.errno in unsupported
    return False


class FileLock:
    """An open file holding an advisory lock until closed."""

    def __init__(self, file: IO[bytes], path: Path) -> None:
        self.file = file
        self.path = path

    @classmethod
    def try_open_rw(cls, path: str | os.PathLike) -> "FileLock | None":
        """Open for read/write with an exclusive lock, or ``None`` if it is held elsewhere."""
        return cls._open(Path(path), exclusive=True, try_lock=True)

    @classmethod
    def open_rw(cls, path: str | os.PathLike) -> "FileLock":
        """Open for read/write, waiting for an exclusive lock."""
        return cls._open(Path(path), exclusive=True, try_lock=False)

    @classmethod
    def try_open_ro(cls, path: str | os.PathLike) -> "FileLock | None":
        """Open an existing file read-only with a shared lock, or ``None`` if contended."""
        return cls._open(Path(path), exclusive=False, try_lock=True)

    @classmethod
    def open_ro(cls, path: str | os.PathLike) -> "FileLock":
        """Open an existing file read-only, waiting for a shared lock."""
        return cls._open(Path(path), exclusive=False, try_lock=False)

    @staticmethod
    def _open_file(path: Path, exclusive: bool) -> IO[bytes]:
        if not exclusive:
            return open(path, "rb")
        flags = os.O_RDWR | os.O_CREAT | getattr(os, "O_BINARY", 0)
        return os.fdopen(os.open(path, flags, 0o666), "r+b")

    @classmethod
    def _open(cls, path: Path, exclusive: bool, try_lock: bool) -> "FileLock | None":
        try:
            try:
                file = cls._open_file(path, exclusive)
            except FileNotFoundError:
                if not exclusive:
                    raise
                path.parent.mkdir(parents=True, exist_ok=True)
                file = cls._open_file(path, exclusive)
        except OSError as exc:
            raise OSError(exc.errno, f"failed to open `{path}`: {exc.strerror}") from exc

        lock = cls(file, path)
        if _is_on_nfs_mount(path):
            return lock

        flags = portalocker.LOCK_EX if exclusive else portalocker.LOCK_SH
        if try_lock:
            flags |= portalocker.LOCK_NB
        try:
            portalocker.lock(file, flags)
        except portalocker.exceptions.AlreadyLocked:
            file.close()
            if try_lock:
                return None
            raise
        except portalocker.exceptions.LockException as exc:
            if _is_unsupported(exc):
                return lock
            file.close()
            raise OSError(f"failed to lock file `{path}`") from exc
        return lock

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or everything that is left."""
        return self.file.read(size)

    def write(self, data: bytes) -> int:
        """Write bytes at the current position."""
        return self.file.write(data)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the file position."""
        return self.file.seek(offset, whence)

    def truncate(self, size: int | None = None) -> int:
        """Cut the file to ``size`` bytes, or at the current position."""
        return self.file.truncate(size)

    def close(self) -> None:
        """Release the lock and close the file."""
        if self.file.closed:
            return
        try:
            portalocker.unlock(self.file)
        except (portalocker.exceptions.LockException, OSError):
            pass
        self.file.close()

    def __enter__(self) -> "FileLock":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()