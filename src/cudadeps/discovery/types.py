"""
Type Definitions for Toolkit Discovery

Strongly-typed values and result classes shared by the discovery components.
Fallback chains pass Lookup results around instead of raising, so
"not found, try the next strategy" stays ordinary data flow.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Generic, Mapping, Optional, Tuple, TypeVar

T = TypeVar("T")

_VERSION_RE = re.compile(r"^\s*v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


@dataclass(frozen=True, order=True)
class Version:
    """Numeric (major, minor, patch) version with total ordering."""

    major: int
    minor: int = 0
    patch: int = 0

    @classmethod
    def parse(cls, text: str) -> "Version":
        """
        Parse a dotted version string.

        Accepts "10", "10.2", "10.2.89" and a leading "v". Trailing text after
        the numeric part (e.g. "12.2+cu121") is ignored.

        Raises:
            ValueError: If the text does not start with a number
        """
        match = _VERSION_RE.match(str(text))
        if not match:
            raise ValueError(f"Not a version string: {text!r}")
        major, minor, patch = match.groups()
        return cls(int(major), int(minor or 0), int(patch or 0))

    @property
    def release(self) -> "Version":
        """The (major, minor) part, with the patch level dropped."""
        return Version(self.major, self.minor)

    def __str__(self) -> str:
        if self.patch:
            return f"{self.major}.{self.minor}.{self.patch}"
        return f"{self.major}.{self.minor}"


class LookupStatus(Enum):
    """Outcome of a single discovery step."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class Lookup(Generic[T]):
    """
    Result of a discovery step.

    NOT_FOUND means "keep searching"; ERROR means the thing exists but is
    unusable (e.g. a binary whose version output cannot be parsed).
    Warnings are non-fatal observations the caller should surface.
    """

    status: LookupStatus
    value: Optional[T] = None
    detail: str = ""
    warnings: Tuple[str, ...] = ()

    @classmethod
    def found(cls, value: T, detail: str = "", warnings: Tuple[str, ...] = ()) -> "Lookup[T]":
        return cls(LookupStatus.FOUND, value, detail, tuple(warnings))

    @classmethod
    def not_found(cls, detail: str = "", warnings: Tuple[str, ...] = ()) -> "Lookup[T]":
        return cls(LookupStatus.NOT_FOUND, None, detail, tuple(warnings))

    @classmethod
    def error(cls, detail: str, warnings: Tuple[str, ...] = ()) -> "Lookup[T]":
        return cls(LookupStatus.ERROR, None, detail, tuple(warnings))

    @property
    def is_error(self) -> bool:
        return self.status is LookupStatus.ERROR

    def __bool__(self) -> bool:
        return self.status is LookupStatus.FOUND

    def unwrap(self) -> T:
        """Return the value or raise LookupError carrying the detail."""
        if self.status is not LookupStatus.FOUND:
            raise LookupError(self.detail or self.status.value)
        return self.value


class LibraryId(Enum):
    """Libraries the resolver binds, keyed by their base name."""

    CUBLAS = "cublas"
    CUSPARSE = "cusparse"
    CUSOLVER = "cusolver"
    CUFFT = "cufft"
    CURAND = "curand"
    CUDNN = "cudnn"
    CUTENSOR = "cutensor"

    @property
    def optional(self) -> bool:
        return self in (LibraryId.CUDNN, LibraryId.CUTENSOR)

    @classmethod
    def core(cls) -> Tuple["LibraryId", ...]:
        return tuple(lib for lib in cls if not lib.optional)

    @classmethod
    def optionals(cls) -> Tuple["LibraryId", ...]:
        return tuple(lib for lib in cls if lib.optional)


class ToolkitSource(Enum):
    """Where a resolved toolkit came from."""

    BUNDLE = "bundle"
    LOCAL = "local"


@dataclass(frozen=True)
class ResolvedToolkit:
    """A toolkit selected for binding. Immutable once created."""

    install_prefixes: Tuple[str, ...]
    version: Version
    library_paths: Mapping[LibraryId, Optional[str]] = field(default_factory=dict)
    source: ToolkitSource = ToolkitSource.LOCAL

    def __post_init__(self):
        object.__setattr__(self, "install_prefixes", tuple(self.install_prefixes))
        object.__setattr__(self, "library_paths", MappingProxyType(dict(self.library_paths)))

    @property
    def release(self) -> Version:
        return self.version.release

    def with_libraries(self, paths: Mapping[LibraryId, Optional[str]]) -> "ResolvedToolkit":
        """Return a copy with additional library paths merged in."""
        merged = dict(self.library_paths)
        merged.update(paths)
        return ResolvedToolkit(self.install_prefixes, self.version, merged, self.source)


@dataclass(frozen=True)
class CompilerCandidate:
    """A host compiler binary and its version."""

    path: str
    version: Version


@dataclass(frozen=True)
class Toolchain:
    """CUDA compiler plus the host compiler it should drive."""

    cuda_compiler: str
    cuda_version: Version
    host_compiler: str
    host_version: Version


@dataclass(frozen=True)
class LibraryVersionInfo:
    """Version reported by a loaded library and the CUDA release it targets."""

    version: Version
    cuda_release: Version


class ResolutionStatus(Enum):
    """Lifecycle of the process-wide resolution."""

    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class ResolutionState:
    """Snapshot of the resolver; replaced, never mutated."""

    status: ResolutionStatus = ResolutionStatus.UNRESOLVED
    toolkit: Optional[ResolvedToolkit] = None
    reason: Optional[str] = None
    warnings: Tuple[str, ...] = ()

    @property
    def resolved(self) -> bool:
        return self.status is ResolutionStatus.RESOLVED

    def as_structured_log(self) -> str:
        if self.toolkit is None:
            return f"ResolutionState status={self.status.value} reason={self.reason}"
        return (
            f"ResolutionState status={self.status.value} version={self.toolkit.version} "
            f"source={self.toolkit.source.value} prefixes={','.join(self.toolkit.install_prefixes)} "
            f"warnings={'||'.join(self.warnings) if self.warnings else 'none'}"
        )
