"""
Library Loading and Self-Reported Versions

Thin ctypes layer: load a shared library by absolute path and, for the
optional libraries, ask them which version they are and which CUDA release
they were built against.
"""

import ctypes
import logging
from typing import Callable, Optional

from .types import LibraryId, LibraryVersionInfo, Version

logger = logging.getLogger(__name__)


def load_library(path: str) -> ctypes.CDLL:
    """
    Load a shared library by path.

    Raises:
        OSError: The file is missing or is not a loadable library
    """
    return ctypes.CDLL(path)


def decode_cudart_version(value: int) -> Version:
    """cudart encodes 10.2 as 10020."""
    return Version(value // 1000, (value % 1000) // 10)


def decode_cudnn_version(value: int) -> Version:
    """cuDNN encodes 7.6.5 as 7605 and, from 9.0 on, 9.1.0 as 90100."""
    if value >= 90000:
        return Version(value // 10000, (value % 10000) // 100, value % 100)
    return Version(value // 1000, (value % 1000) // 100, value % 100)


def decode_cutensor_version(value: int) -> Version:
    """cuTENSOR encodes 1.2.0 as 10200."""
    return Version(value // 10000, (value % 10000) // 100, value % 100)


_VERSION_SYMBOLS = {
    LibraryId.CUDNN: ("cudnnGetVersion", "cudnnGetCudartVersion", decode_cudnn_version),
    LibraryId.CUTENSOR: ("cutensorGetVersion", "cutensorGetCudartVersion", decode_cutensor_version),
}


def probe_library_version(
    library: LibraryId,
    path: str,
    loader: Callable[[str], object] = load_library,
) -> Optional[LibraryVersionInfo]:
    """
    Query an optional library for its version and target CUDA release.

    Returns:
        LibraryVersionInfo, or None when the library cannot be loaded or does
        not export the version entry points
    """
    symbols = _VERSION_SYMBOLS.get(library)
    if symbols is None:
        return None
    version_symbol, cudart_symbol, decode = symbols

    try:
        handle = loader(path)
        get_version = getattr(handle, version_symbol)
        get_cudart = getattr(handle, cudart_symbol)
        get_version.restype = ctypes.c_size_t
        get_cudart.restype = ctypes.c_size_t
        version = decode(int(get_version()))
        cuda_release = decode_cudart_version(int(get_cudart()))
    except (OSError, AttributeError) as e:
        logger.debug(f"Could not query version of {library.value} at {path}: {e}")
        return None

    logger.debug(f"{library.value} at {path} reports version {version} for CUDA {cuda_release}")
    return LibraryVersionInfo(version=version, cuda_release=cuda_release)
