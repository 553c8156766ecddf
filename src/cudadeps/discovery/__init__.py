"""
Toolkit Discovery Module - Clean API

Main exports:
- ToolkitResolver: Lazy, memoized resolution of the CUDA toolkit
- find_library(), find_binary(): Path search primitives
- extract_version(): Tool version probes
- locate_toolkit(), find_toolkit_dirs(): Local installation discovery
- BundleProvisioner, ArtifactStore: Pre-packaged bundles
- resolve_bundled(): Newest compatible bundled release
- match_host_compiler(), find_toolchain(): Host compiler selection
"""

# Typed values and results
from .types import (
    Version,
    Lookup,
    LookupStatus,
    LibraryId,
    ToolkitSource,
    ResolvedToolkit,
    CompilerCandidate,
    Toolchain,
    LibraryVersionInfo,
    ResolutionStatus,
    ResolutionState,
)
from .platform import Platform

# Search and probing
from .path_search import find_library, find_binary
from .version_extractor import extract_version, parse_version_output, NVCC_VERSION_PATTERN
from .loader import load_library, probe_library_version

# Toolkit sources
from .toolkit_locator import (
    find_toolkit_dirs,
    find_toolkit_binary,
    find_toolkit_library,
    find_toolkit_version,
    locate_toolkit,
)
from .artifact_store import ArtifactStore
from .bundle_provisioner import BundleProvisioner
from .compatibility_resolver import resolve_bundled, select_candidates

# Prerequisites
from .driver import DriverInfo, DriverStatus, RuntimeBinder, capability_probe, find_driver

# Compilers
from .host_compiler import match_host_compiler, find_toolchain, gcc_max_major

# State machine
from .resolver import ToolkitResolver

__all__ = [
    # Types
    "Version",
    "Lookup",
    "LookupStatus",
    "LibraryId",
    "ToolkitSource",
    "ResolvedToolkit",
    "CompilerCandidate",
    "Toolchain",
    "LibraryVersionInfo",
    "ResolutionStatus",
    "ResolutionState",
    "Platform",
    # Search
    "find_library",
    "find_binary",
    "extract_version",
    "parse_version_output",
    "NVCC_VERSION_PATTERN",
    "load_library",
    "probe_library_version",
    # Sources
    "find_toolkit_dirs",
    "find_toolkit_binary",
    "find_toolkit_library",
    "find_toolkit_version",
    "locate_toolkit",
    "ArtifactStore",
    "BundleProvisioner",
    "resolve_bundled",
    "select_candidates",
    # Prerequisites
    "DriverInfo",
    "DriverStatus",
    "RuntimeBinder",
    "capability_probe",
    "find_driver",
    # Compilers
    "match_host_compiler",
    "find_toolchain",
    "gcc_max_major",
    # State machine
    "ToolkitResolver",
]
