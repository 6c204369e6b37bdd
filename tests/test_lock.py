import io

import pytest
from semver import Version

from componentkit.ids import PackageId, VersionReq
from componentkit.lock import (
    DEFAULT_REGISTRY_NAME,
    FileLock,
    LockedPackage,
    LockedPackageVersion,
    LockFile,
    LockFileResolver,
)

DIGEST = "sha256:" + "ab" * 32
OTHER_DIGEST = "sha256:" + "cd" * 32


def sample_lock_file():
    return LockFile(
        [
            LockedPackage(
                PackageId.parse("a:b"),
                None,
                [
                    LockedPackageVersion("^1.0.0", Version.parse("1.2.0"), DIGEST),
                    LockedPackageVersion("^2.0.0", Version.parse("2.0.1"), OTHER_DIGEST),
                ],
            ),
            LockedPackage(
                PackageId.parse("c:d"),
                "other",
                [LockedPackageVersion("=0.1.0", Version.parse("0.1.0"), DIGEST)],
            ),
        ]
    )


def test_write_read_round_trip():
    lock = sample_lock_file()
    buffer = io.StringIO()
    lock.write(buffer, "app")
    buffer.seek(0)
    assert LockFile.read(buffer) == lock


def test_write_header():
    buffer = io.StringIO()
    LockFile().write(buffer, "app")
    assert buffer.getvalue().startswith(
        "# This file is automatically generated by app.\n"
        "# It is not intended for manual editing.\n"
    )


def test_write_replaces_existing_content():
    buffer = io.StringIO("x" * 5000)
    LockFile().write(buffer, "app")
    buffer.seek(0)
    assert LockFile.read(buffer) == LockFile()
    assert "x" not in buffer.getvalue()


def test_empty_lock_file_has_no_packages():
    text = LockFile().to_toml()
    assert "package" not in text
    assert LockFile.read(io.StringIO(text)) == LockFile()


def test_read_bytes():
    text = sample_lock_file().to_toml().encode("utf-8")
    assert LockFile.read(io.BytesIO(text)) == sample_lock_file()


def test_read_missing_version():
    with pytest.raises(ValueError, match="missing file format version"):
        LockFile.read(io.StringIO("[[package]]\nid = \"a:b\"\n"))


def test_read_non_integer_version():
    with pytest.raises(ValueError, match="file format version is not an integer"):
        LockFile.read(io.StringIO('version = "1"\n'))


def test_read_unsupported_version():
    with pytest.raises(ValueError, match="unsupported file format version 2"):
        LockFile.read(io.StringIO("version = 2\n"))


def test_read_invalid_package():
    with pytest.raises(ValueError, match="invalid file format"):
        LockFile.read(io.StringIO('version = 1\n[[package]]\nregistry = "x"\n'))


def test_read_invalid_digest():
    text = (
        'version = 1\n[[package]]\nid = "a:b"\n[[package.version]]\n'
        'requirement = "^1.0.0"\nversion = "1.0.0"\ndigest = "md5:00"\n'
    )
    with pytest.raises(ValueError, match="invalid file format"):
        LockFile.read(io.StringIO(text))


def test_locked_package_key_defaults_registry():
    pkg = LockedPackage(PackageId.parse("a:b"))
    assert pkg.key() == (PackageId.parse("a:b"), DEFAULT_REGISTRY_NAME)
    assert LockedPackage(PackageId.parse("a:b"), "other").key()[1] == "other"


def test_resolver_hit():
    lock = sample_lock_file()
    resolver = LockFileResolver(lock)
    found = resolver.resolve("default", PackageId.parse("a:b"), VersionReq.parse("1.0.0"))
    assert found is lock.packages[0].versions[0]
    found = resolver.resolve("default", PackageId.parse("a:b"), VersionReq.parse("^2.0.0"))
    assert found is lock.packages[0].versions[1]
    found = resolver.resolve("other", PackageId.parse("c:d"), VersionReq.parse("=0.1.0"))
    assert found is lock.packages[1].versions[0]


def test_resolver_miss():
    resolver = LockFileResolver(sample_lock_file())
    assert resolver.resolve("other", PackageId.parse("a:b"), VersionReq.parse("1.0.0")) is None
    assert resolver.resolve("default", PackageId.parse("a:b"), VersionReq.parse("^3")) is None
    assert resolver.resolve("default", PackageId.parse("z:z"), VersionReq.parse("1.0.0")) is None


def test_file_lock_creates_directories(tmp_path):
    path = tmp_path / "nested" / "dir" / "file.lock"
    lock = FileLock.try_open_rw(path)
    assert lock is not None
    with lock:
        lock.write(b"hello")
        lock.seek(0)
        assert lock.read() == b"hello"
    assert path.read_bytes() == b"hello"


def test_exclusive_lock_contention(tmp_path):
    path = tmp_path / "file.lock"
    first = FileLock.open_rw(path)
    try:
        assert FileLock.try_open_rw(path) is None
        assert FileLock.try_open_ro(path) is None
    finally:
        first.close()
    second = FileLock.try_open_rw(path)
    assert second is not None
    second.close()


def test_shared_locks_coexist(tmp_path):
    path = tmp_path / "file.lock"
    path.write_bytes(b"data")
    first = FileLock.open_ro(path)
    second = FileLock.try_open_ro(path)
    try:
        assert second is not None
        assert second.read() == b"data"
        assert FileLock.try_open_rw(path) is None
    finally:
        first.close()
        if second is not None:
            second.close()


def test_read_only_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        FileLock.try_open_ro(tmp_path / "missing" / "file.lock")


def test_lock_file_through_file_lock(tmp_path):
    path = tmp_path / "component.lock"
    lock = sample_lock_file()
    with FileLock.open_rw(path) as handle:
        lock.write(handle, "app")
    with FileLock.open_ro(path) as handle:
        assert LockFile.read(handle) == lock