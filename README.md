# componentkit

Building blocks for tools that build WebAssembly components.

- **Terminal output** (`componentkit.terminal`): status lines with
  right-justified, optionally coloured headers (`Terminal`), verbosity control
  (`Verbosity`), colour selection (`Color`, `parse_color`) and ANSI colours
  (`Colors`).
- **Common command-line options** (`componentkit.command`): `-q/--quiet`,
  `-v/--verbose` and `--color WHEN` for any `argparse` parser
  (`add_common_options`), turned into a `Terminal` by
  `CommonOptions.new_terminal()`.
- **Package identifiers and version requirements** (`componentkit.ids`):
  `PackageId` (`namespace:name`), `VersionReq` (such as `^1.2` or
  `>=1.0, <2`) and `VersionedPackageId` (such as `wasi:http@1.0.0`).
- **Lock files** (`componentkit.lock`): reading and writing a versioned TOML
  lock file (`LockFile`, `LockedPackage`, `LockedPackageVersion`), looking up
  locked versions (`LockFileResolver`) and advisory file locking
  (`FileLock`).
- **Dependency entries** (`componentkit.dependency`): parsing a dependency
  from a manifest, either a version requirement string or a table with
  `package`, `version`, `registry` or `path` (`parse_dependency`,
  `RegistryPackage`, `LocalDependency`), writing it back
  (`dependency_to_toml`), and looking up registry URLs by name (`find_url`).

## Installation

```
pip install componentkit
```

Python 3.10 or later is required.

## Examples

### Terminal output

```python
from componentkit.terminal import Color, Terminal, Verbosity

terminal = Terminal(Verbosity.NORMAL, Color.AUTO)
terminal.status("Compiling", "my-component v0.1.0")
terminal.warn("no registry configured, using the default")
terminal.error("something went wrong")
```

Output goes to stderr. `Terminal.error` is printed even at quiet verbosity;
the other messages are left out when the terminal is quiet.
`Terminal.from_write(out)` writes to any text object instead, without colour
and at verbose level.

### Command-line options

```python
import argparse

from componentkit.command import CommonOptions, add_common_options

parser = argparse.ArgumentParser()
add_common_options(parser)
options = CommonOptions(**vars(parser.parse_args(["-v", "--color", "never"])))
terminal = options.new_terminal()
```

An unknown `--color` value is rejected by the parser.

### Identifiers and requirements

```python
from componentkit.ids import PackageId, VersionReq, VersionedPackageId

pkg = VersionedPackageId.parse("wasi:http@1.0.0")
print(pkg.id, pkg.version)          # wasi:http ^1.0.0
VersionReq.parse("^1.2").matches("1.4.0")   # True
PackageId.parse("Not Valid")        # raises ValueError
```

### Lock files

```python
from componentkit.lock import FileLock, LockFile, LockFileResolver

with FileLock.open_ro("wit.lock") as locked:
    lock_file = LockFile.read(locked)

resolver = LockFileResolver(lock_file)
```

`LockFile.write(file, app)` replaces the file's contents with a header comment
naming `app` followed by the TOML. A lock file whose `version` is missing, not
an integer, or not `1` is rejected with `ValueError`.

`FileLock.open_rw` and `FileLock.try_open_rw` create the file (and its parent
directories) if needed and take an exclusive lock; `open_ro` and `try_open_ro`
need an existing file and take a shared lock. The `try_` forms return `None`
when the lock is held elsewhere. Locking is skipped on NFS mounts.

### Dependencies

```python
from componentkit.dependency import dependency_to_toml, find_url, parse_dependency

dep = parse_dependency({"package": "wasi:http", "version": "1.0.0"})
print(dependency_to_toml(dep))   # {'package': 'wasi:http', 'version': '1.0.0'}

url = find_url(None, {}, default="https://registry.example.com")
```

## What this package does not do

It has no command of its own, draws no progress bars, and does not contact
component registries: it parses dependency entries and lock files but does
not resolve dependencies against a registry or download packages.

## Running the tests

```
pip install "componentkit[test]"
pytest
```