"""Package identifiers and semantic version requirements."""

from __future__ import annotations

import enum
import functools
import re
from dataclasses import dataclass

from semver import Version

_LABEL = re.compile(r"[a-z][a-z0-9]*(?:-[a-z][a-z0-9]*)*")
_NUMBER = re.compile(r"0|[1-9][0-9]*")
_PRE_IDENT = re.compile(r"[0-9A-Za-z-]+")
_WILDCARDS = ("*", "x", "X")


@functools.total_ordering
@dataclass(frozen=True)
class PackageId:
    """A registry package identifier of the form ``namespace:name``."""

    namespace: str
    name: str

    @classmethod
    def parse(cls, text: str) -> "PackageId":
        """Parse ``namespace:name``; both parts are lower-case kebab-case labels."""
        namespace, sep, name = text.partition(":")
        if not sep or ":" in name:
            raise ValueError(
                f"invalid package id `{text}`: expected format is `<namespace>:<name>`"
            )
        for part in (namespace, name):
            if not _LABEL.fullmatch(part):
                raise ValueError(
                    f"invalid package id `{text}`: `{part}` is not a valid kebab-case label"
                )
        return cls(namespace, name)

    def __str__(self) -> str:
        return f"{self.namespace}:{self.name}"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, PackageId):
            return NotImplemented
        return str(self) < str(other)


class _Op(enum.Enum):
    EXACT = "="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    TILDE = "~"
    CARET = "^"
    WILDCARD = ""


_OP_SYMBOLS = (
    (">=", _Op.GREATER_EQ),
    ("<=", _Op.LESS_EQ),
    (">", _Op.GREATER),
    ("<", _Op.LESS),
    ("=", _Op.EXACT),
    ("~", _Op.TILDE),
    ("^", _Op.CARET),
)


def _cmp_pre(left: str, right: str) -> int:
    """Compare pre-release strings; an empty one ranks above any other."""
    return Version(0, 0, 0, left or None).compare(Version(0, 0, 0, right or None))


@dataclass(frozen=True)
class _Comparator:
    op: _Op
    major: int
    minor: int | None = None
    patch: int | None = None
    pre: str = ""

    def __str__(self) -> str:
        text = f"{self.op.value}{self.major}"
        if self.minor is not None:
            text += f".{self.minor}"
            if self.patch is not None:
                text += f".{self.patch}"
                if self.pre:
                    text += f"-{self.pre}"
            elif self.op is _Op.WILDCARD:
                text += ".*"
        elif self.op is _Op.WILDCARD:
            text += ".*"
        return text

    def _exact(self, ver: Version, pre: str) -> bool:
        if ver.major != self.major:
            return False
        if self.minor is not None and ver.minor != self.minor:
            return False
        if self.patch is not None and ver.patch != self.patch:
            return False
        return pre == self.pre

    def _greater(self, ver: Version, pre: str) -> bool:
        if ver.major != self.major:
            return ver.major > self.major
        if self.minor is None:
            return False
        if ver.minor != self.minor:
            return ver.minor > self.minor
        if self.patch is None:
            return False
        if ver.patch != self.patch:
            return ver.patch > self.patch
        return _cmp_pre(pre, self.pre) > 0

    def _less(self, ver: Version, pre: str) -> bool:
        if ver.major != self.major:
            return ver.major < self.major
        if self.minor is None:
            return False
        if ver.minor != self.minor:
            return ver.minor < self.minor
        if self.patch is None:
            return False
        if ver.patch != self.patch:
            return ver.patch < self.patch
        return _cmp_pre(pre, self.pre) < 0

    def _tilde(self, ver: Version, pre: str) -> bool:
        if ver.major != self.major:
            return False
        if self.minor is not None and ver.minor != self.minor:
            return False
        if self.patch is not None and ver.patch != self.patch:
            return ver.patch > self.patch
        return _cmp_pre(pre, self.pre) >= 0

    def _caret(self, ver: Version, pre: str) -> bool:
        if ver.major != self.major:
            return False
        if self.minor is None:
            return True
        minor = self.minor
        if self.patch is None:
            return ver.minor >= minor if self.major > 0 else ver.minor == minor
        patch = self.patch
        if self.major > 0:
            if ver.minor != minor:
                return ver.minor > minor
            if ver.patch != patch:
                return ver.patch > patch
        elif minor > 0:
            if ver.minor != minor:
                return False
            if ver.patch != patch:
                return ver.patch > patch
        elif ver.minor != minor or ver.patch != patch:
            return False
        return _cmp_pre(pre, self.pre) >= 0

    def matches(self, ver: Version, pre: str) -> bool:
        op = self.op
        if op in (_Op.EXACT, _Op.WILDCARD):
            return self._exact(ver, pre)
        if op is _Op.GREATER:
            return self._greater(ver, pre)
        if op is _Op.GREATER_EQ:
            return self._exact(ver, pre) or self._greater(ver, pre)
        if op is _Op.LESS:
            return self._less(ver, pre)
        if op is _Op.LESS_EQ:
            return self._exact(ver, pre) or self._less(ver, pre)
        if op is _Op.TILDE:
            return self._tilde(ver, pre)
        return self._caret(ver, pre)

    def allows_pre_of(self, ver: Version) -> bool:
        return (
            self.major == ver.major
            and self.minor == ver.minor
            and self.patch == ver.patch
            and bool(self.pre)
        )


def _parse_number(text: str, source: str) -> int:
    if not _NUMBER.fullmatch(text):
        raise ValueError(f"invalid version requirement `{source}`: bad number `{text}`")
    return int(text)


def _parse_comparator(part: str, source: str) -> _Comparator:
    op: _Op | None = None
    for symbol, candidate in _OP_SYMBOLS:
        if part.startswith(symbol):
            op = candidate
            part = part[len(symbol):].lstrip()
            break
    if not part:
        raise ValueError(f"invalid version requirement `{source}`: missing version")
    if "+" in part:
        raise ValueError(
            f"invalid version requirement `{source}`: build metadata is not allowed"
        )
    core, _, pre = part.partition("-")
    pieces = core.split(".")
    if len(pieces) > 3:
        raise ValueError(f"invalid version requirement `{source}`: too many components")
    if pieces[0] in _WILDCARDS:
        raise ValueError(f"invalid version requirement `{source}`: unexpected wildcard")
    major = _parse_number(pieces[0], source)
    minor: int | None = None
    patch: int | None = None
    wildcard = False
    if len(pieces) > 1:
        if pieces[1] in _WILDCARDS:
            wildcard = True
            if len(pieces) > 2 and pieces[2] not in _WILDCARDS:
                raise ValueError(
                    f"invalid version requirement `{source}`: unexpected number after wildcard"
                )
        else:
            minor = _parse_number(pieces[1], source)
            if len(pieces) > 2:
                if pieces[2] in _WILDCARDS:
                    wildcard = True
                else:
                    patch = _parse_number(pieces[2], source)
    if pre:
        if patch is None:
            raise ValueError(
                f"invalid version requirement `{source}`: pre-release needs a full version"
            )
        if not all(_PRE_IDENT.fullmatch(ident) for ident in pre.split(".")):
            raise ValueError(f"invalid version requirement `{source}`: bad pre-release `{pre}`")
    elif part.endswith("-"):
        raise ValueError(f"invalid version requirement `{source}`: empty pre-release")
    if wildcard and op in (None, _Op.EXACT):
        op = _Op.WILDCARD
    elif op is None:
        op = _Op.CARET
    return _Comparator(op, major, minor, patch, pre)


@dataclass(frozen=True)
class VersionReq:
    """A semantic version requirement such as ``^1.2`` or ``>=1.0, <2``."""

    comparators: tuple = ()

    @classmethod
    def parse(cls, text: str) -> "VersionReq":
        """Parse a requirement; a bare version means a caret requirement."""
        stripped = text.strip()
        if stripped in ("", *_WILDCARDS):
            return cls(())
        parts = [part.strip() for part in stripped.split(",")]
        return cls(tuple(_parse_comparator(part, text) for part in parts))

    def matches(self, version: Version | str) -> bool:
        """Whether ``version`` satisfies every comparator of the requirement."""
        ver = Version.parse(version) if isinstance(version, str) else version
        pre = ver.prerelease or ""
        if not all(cmp.matches(ver, pre) for cmp in self.comparators):
            return False
        if not pre:
            return True
        return any(cmp.allows_pre_of(ver) for cmp in self.comparators)

    def __str__(self) -> str:
        if not self.comparators:
            return "*"
        return ", ".join(str(cmp) for cmp in self.comparators)


@dataclass(frozen=True)
class VersionedPackageId:
    """A package identifier with an optional version requirement."""

    id: PackageId
    version: VersionReq | None = None

    @classmethod
    def parse(cls, text: str) -> "VersionedPackageId":
        """Parse ``namespace:name`` or ``namespace:name@requirement``."""
        id_text, sep, version = text.partition("@")
        if not sep:
            return cls(PackageId.parse(text), None)
        package_id = PackageId.parse(id_text)
        try:
            requirement = VersionReq.parse(version)
        except ValueError as exc:
            raise ValueError(f"invalid package version `{version}`: {exc}") from exc
        return cls(package_id, requirement)

    def __str__(self) -> str:
        if self.version is None:
            return str(self.id)
        return f"{self.id}@{self.version}"