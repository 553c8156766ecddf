"""
Host Compiler Matcher

Finds the host C/C++ compiler nvcc should drive for a given toolkit:
- Linux: the newest gcc whose major version the toolkit supports
- Windows: Visual Studio's cl.exe
- macOS: clang
"""

import os
import logging
from typing import Dict, List, Mapping, Optional

from ..common.constants import (
    GCC_MAX_MAJOR_FOR_CUDA,
    GCC_PROBE_MAJORS,
    GCC_PROBE_MINORS,
    NVCC,
    VS_COMNTOOLS_VARS,
)
from ..common.errors import HostCompilerError, ToolkitError
from .path_search import find_binary
from .platform import Platform
from .toolkit_locator import find_toolkit_binary
from .types import CompilerCandidate, Lookup, Toolchain, Version
from .version_extractor import (
    CLANG_VERSION_PATTERN,
    MSVC_VERSION_PATTERN,
    NVCC_VERSION_PATTERN,
    extract_version,
    gcc_version_pattern,
)

logger = logging.getLogger(__name__)

_GCC_TABLE = sorted((Version.parse(release), major) for release, major in GCC_MAX_MAJOR_FOR_CUDA.items())


def gcc_max_major(release: Version) -> int:
    """
    Maximum GCC major version supported by a toolkit release.

    Releases newer than the table use the newest entry not above them;
    releases older than the table use its oldest entry.
    """
    release = release.release
    eligible = [major for table_release, major in _GCC_TABLE if table_release <= release]
    if eligible:
        return eligible[-1]
    return _GCC_TABLE[0][1]


def gcc_candidate_names() -> List[str]:
    """Every gcc name a distribution might install: gcc, gcc-9, gcc-9.4, gcc94."""
    names = ["gcc"]
    for major in GCC_PROBE_MAJORS:
        names.append(f"gcc-{major}")
        for minor in GCC_PROBE_MINORS:
            names.append(f"gcc-{major}.{minor}")
            names.append(f"gcc{major}{minor}")
    return names


def _gcc_candidates(
    platform: Platform, environ: Mapping[str, str], timeout: Optional[float]
) -> tuple:
    """Locate and version every gcc on PATH. Returns (candidates, warnings)."""
    seen: Dict[str, CompilerCandidate] = {}
    warnings = []
    for name in gcc_candidate_names():
        binary = find_binary(platform.binary_filename(name), platform=platform, environ=environ)
        if not binary or binary.value in seen:
            continue
        version = extract_version(
            binary.value, "--version", gcc_version_pattern(name), timeout=timeout, first_line_only=True
        )
        if not version:
            message = f"Could not parse GCC version info ({version.detail}), skipping this compiler"
            logger.warning(message)
            warnings.append(message)
            continue
        seen[binary.value] = CompilerCandidate(binary.value, version.value)
    return list(seen.values()), tuple(warnings)


def _match_gcc(
    toolkit_version: Optional[Version],
    platform: Platform,
    environ: Mapping[str, str],
    timeout: Optional[float],
) -> Lookup[CompilerCandidate]:
    candidates, warnings = _gcc_candidates(platform, environ, timeout)
    if not candidates:
        return Lookup.not_found("Could not find a host compiler (gcc)", warnings=warnings)

    if toolkit_version is not None:
        max_major = gcc_max_major(toolkit_version)
        compatible = [c for c in candidates if c.version.major <= max_major]
        if not compatible:
            found = ", ".join(f"{c.path} ({c.version})" for c in candidates)
            return Lookup.not_found(
                f"Could not find a suitable host compiler for CUDA {toolkit_version}: "
                f"gcc {max_major}.x or older is required, found {found}",
                warnings=warnings,
            )
        candidates = compatible

    best = max(candidates, key=lambda c: c.version)
    return Lookup.found(best, warnings=warnings)


def _msvc_paths(platform: Platform, environ: Mapping[str, str]) -> List[str]:
    paths = []
    for var in VS_COMNTOOLS_VARS:
        tools = environ.get(var)
        if tools:
            paths.append(os.path.normpath(os.path.join(tools, "..", "..", "VC", "bin", "amd64", "cl.exe")))
            break
    cl = find_binary(platform.binary_filename("cl"), platform=platform, environ=environ)
    if cl:
        paths.append(cl.value)
    return paths


def _match_msvc(
    platform: Platform, environ: Mapping[str, str], timeout: Optional[float]
) -> Lookup[CompilerCandidate]:
    for path in _msvc_paths(platform, environ):
        if not os.path.isfile(path):
            logger.debug(f"cl.exe not present at {path}")
            continue
        # cl.exe prints its banner to stderr when run without arguments
        version = extract_version(path, None, MSVC_VERSION_PATTERN, timeout=timeout)
        if not version:
            logger.warning(f"Could not parse Visual Studio compiler version ({version.detail})")
            continue
        return Lookup.found(CompilerCandidate(path, version.value))
    return Lookup.not_found(
        f"Could not find a host compiler (cl.exe); set one of {', '.join(VS_COMNTOOLS_VARS)} or add cl.exe to PATH"
    )


def _match_clang(
    platform: Platform, environ: Mapping[str, str], timeout: Optional[float]
) -> Lookup[CompilerCandidate]:
    clang = find_binary(platform.binary_filename("clang"), platform=platform, environ=environ)
    if not clang:
        return Lookup.not_found("Could not find a host compiler (clang)")
    version = extract_version(clang.value, "--version", CLANG_VERSION_PATTERN, timeout=timeout)
    if not version:
        logger.warning(f"Could not parse clang version ({version.detail})")
        return Lookup.not_found(version.detail)
    return Lookup.found(CompilerCandidate(clang.value, version.value))


def match_host_compiler(
    toolkit_version: Optional[Version] = None,
    platform: Optional[Platform] = None,
    environ: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> Lookup[CompilerCandidate]:
    """
    Select a host compiler compatible with the toolkit.

    Args:
        toolkit_version: Toolkit the compiler must work with (no filtering if None)
        platform: Platform rules (detected if omitted)
        environ: Environment mapping (os.environ if omitted)
        timeout: Timeout per version probe

    Returns:
        Lookup with the selected compiler; NOT_FOUND with the toolkit version
        and the required range in its detail when nothing is compatible
    """
    platform = platform or Platform.detect()
    environ = os.environ if environ is None else environ

    if platform.is_windows:
        result = _match_msvc(platform, environ, timeout)
    elif platform.is_apple:
        result = _match_clang(platform, environ, timeout)
    else:
        result = _match_gcc(toolkit_version, platform, environ, timeout)

    if result:
        logger.debug(f"Selected host compiler {result.value.path} ({result.value.version})")
    return result


def find_toolchain(
    toolkit_dirs,
    toolkit_version: Optional[Version] = None,
    platform: Optional[Platform] = None,
    environ: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> Toolchain:
    """
    Locate nvcc in the toolkit and the host compiler to pair it with.

    Raises:
        ToolkitError: The toolkit does not contain a usable nvcc
        HostCompilerError: No compatible host compiler exists
    """
    platform = platform or Platform.detect()
    toolkit_dirs = list(toolkit_dirs)

    nvcc = find_toolkit_binary(NVCC, toolkit_dirs, platform=platform)
    if not nvcc:
        raise ToolkitError(f"CUDA toolkit at {', '.join(toolkit_dirs)} does not provide {NVCC}")

    if toolkit_version is None:
        version = extract_version(nvcc.value, "--version", NVCC_VERSION_PATTERN, timeout=timeout)
        if not version:
            raise ToolkitError(version.detail)
        toolkit_version = version.value

    compiler = match_host_compiler(toolkit_version, platform=platform, environ=environ, timeout=timeout)
    if not compiler:
        max_major = None if (platform.is_windows or platform.is_apple) else gcc_max_major(toolkit_version)
        raise HostCompilerError(
            compiler.detail,
            toolkit_version=toolkit_version,
            max_compiler_version=Version(max_major) if max_major is not None else None,
        )

    return Toolchain(
        cuda_compiler=nvcc.value,
        cuda_version=toolkit_version,
        host_compiler=compiler.value.path,
        host_version=compiler.value.version,
    )
