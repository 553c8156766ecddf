"""
cudadeps - CUDA toolkit resolution

Finds a usable CUDA toolkit on first use (pre-packaged bundle or local
installation), binds its libraries and answers queries about it:

    import cudadeps

    if cudadeps.functional(show_reason=True):
        print(cudadeps.version(), cudadeps.library_path("cublas"))

The module-level functions delegate to a process-wide ToolkitResolver that
is created lazily. Construct a ToolkitResolver directly to control its
configuration and collaborators.
"""

import threading
from typing import Optional, Sequence, Union

from .common.errors import (
    CudaDepsError,
    HostCompilerError,
    NotFunctionalError,
    ProvisionError,
    ToolkitError,
)
from .discovery.resolver import ToolkitResolver
from .discovery.types import LibraryId, Toolchain, Version

__version__ = "0.1.0"

_default_resolver: Optional[ToolkitResolver] = None
_default_lock = threading.Lock()


def default_resolver() -> ToolkitResolver:
    """The process-wide resolver, created on first use."""
    global _default_resolver
    resolver = _default_resolver
    if resolver is None:
        with _default_lock:
            if _default_resolver is None:
                _default_resolver = ToolkitResolver()
            resolver = _default_resolver
    return resolver


def reset_default_resolver(resolver: Optional[ToolkitResolver] = None):
    """Replace the process-wide resolver (None discards it). Intended for tests."""
    global _default_resolver
    with _default_lock:
        _default_resolver = resolver


def functional(show_reason: bool = False) -> bool:
    return default_resolver().functional(show_reason)


def prefix() -> Sequence[str]:
    """Install prefixes of the resolved toolkit."""
    return default_resolver().prefixes()


def version() -> Version:
    return default_resolver().version()


def release() -> Version:
    return default_resolver().release()


def library_path(library: Union[LibraryId, str]) -> Optional[str]:
    return default_resolver().library_path(library)


def has_optional_library(library: Union[LibraryId, str]) -> bool:
    return default_resolver().has_optional_library(library)


def has_cudnn() -> bool:
    return default_resolver().has_cudnn()


def has_cutensor() -> bool:
    return default_resolver().has_cutensor()


def toolchain() -> Toolchain:
    return default_resolver().toolchain()


__all__ = [
    "ToolkitResolver",
    "LibraryId",
    "Toolchain",
    "Version",
    "CudaDepsError",
    "HostCompilerError",
    "NotFunctionalError",
    "ProvisionError",
    "ToolkitError",
    "default_resolver",
    "reset_default_resolver",
    "functional",
    "prefix",
    "version",
    "release",
    "library_path",
    "has_optional_library",
    "has_cudnn",
    "has_cutensor",
    "toolchain",
]
