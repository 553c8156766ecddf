"""
Toolkit Locator - Find an Unmanaged Local CUDA Installation

Combines the path search and version extraction to discover a toolkit that
was installed outside of cudadeps (system packages, NVIDIA installers,
CUDA_PATH style environment variables).
"""

import os
import logging
from typing import Iterable, List, Mapping, Optional, Sequence

from ..common.constants import CUDA_TOOLKIT_RELEASES, NVCC, NVDISASM, TOOLKIT_ENV_VARS
from .path_search import find_binary, find_library
from .platform import Platform
from .types import LibraryId, Lookup, ResolvedToolkit, ToolkitSource, Version
from .version_extractor import NVCC_VERSION_PATTERN, extract_version

logger = logging.getLogger(__name__)

_KNOWN_RELEASES = [Version.parse(r) for r in CUDA_TOOLKIT_RELEASES]


def _join_names(items: Sequence[str]) -> str:
    items = list(items)
    if len(items) <= 1:
        return "".join(items)
    return ", ".join(items[:-1]) + " and " + items[-1]


def _environment_dirs(env_vars: Iterable[str], environ: Mapping[str, str]) -> Lookup[List[str]]:
    """Collect toolkit dirs from environment variables, warning on disagreement."""
    set_vars = [var for var in env_vars if environ.get(var)]
    values = list(dict.fromkeys(environ[var] for var in set_vars))
    warnings = ()
    if len(values) > 1:
        message = f"Multiple CUDA environment variables set to different values: {_join_names(set_vars)}"
        logger.warning(message)
        warnings = (message,)
    if values:
        logger.debug(f"Considering CUDA toolkit at {', '.join(values)} based on environment variables")
    return Lookup.found(values, warnings=warnings)


def find_toolkit_dirs(
    explicit_dirs: Iterable[str] = (),
    env_vars: Iterable[str] = TOOLKIT_ENV_VARS,
    default_dirs: Optional[Iterable[str]] = None,
    platform: Optional[Platform] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Lookup[List[str]]:
    """
    Find every existing toolkit root, in priority order.

    Order: explicit dirs, environment variables, conventional install roots,
    then roots corroborated by nvcc on PATH and libcudart via the linker.

    Returns:
        Lookup with the deduplicated, existing roots; NOT_FOUND if none exist.
        A "multiple installations" warning is attached when more than one exists.
    """
    platform = platform or Platform.detect()
    environ = os.environ if environ is None else environ

    dirs = [os.fspath(d) for d in explicit_dirs]
    env_lookup = _environment_dirs(env_vars, environ)
    warnings = list(env_lookup.warnings)
    dirs.extend(env_lookup.value)
    if default_dirs is None:
        default_dirs = platform.default_toolkit_roots(environ)
    dirs.extend(default_dirs)

    # The compiler binary (in the case PATH points to the installation)
    nvcc = find_binary(platform.binary_filename(NVCC), platform=platform, environ=environ)
    if nvcc:
        root = platform.install_root(nvcc.value, "bin")
        logger.debug(f"Considering CUDA toolkit at {root} based on nvcc at {nvcc.value}")
        dirs.append(root)

    # The runtime library (in the case the linker path points to the installation)
    cudart = find_library(
        platform.library_filenames(platform.runtime_library, _KNOWN_RELEASES), platform=platform, environ=environ
    )
    if cudart:
        # Windows ships the runtime DLLs in bin/
        root = platform.install_root(cudart.value, "bin" if platform.is_windows else "lib")
        logger.debug(f"Considering CUDA toolkit at {root} based on libcudart at {cudart.value}")
        dirs.append(root)

    dirs = [d for d in dict.fromkeys(dirs) if os.path.isdir(d)]
    if not dirs:
        env_names = "|".join(env_vars) or "CUDA_PATH"
        return Lookup.not_found(
            f"Could not find CUDA toolkit; specify using the {env_names} environment variable",
            warnings=tuple(warnings),
        )
    if len(dirs) > 1:
        message = f"Found multiple CUDA toolkit installations: {_join_names(dirs)}"
        logger.warning(message)
        warnings.append(message)

    return Lookup.found(dirs, warnings=tuple(warnings))


def find_toolkit_binary(name: str, dirs: Sequence[str], platform: Optional[Platform] = None) -> Lookup[str]:
    """Find a toolkit binary, restricted to the given roots (no PATH fallback)."""
    platform = platform or Platform.detect()
    return find_binary(platform.binary_filename(name), dirs, platform=platform, environ={})


def find_toolkit_library(
    name: str,
    dirs: Sequence[str],
    versions: Iterable[Version] = (),
    platform: Optional[Platform] = None,
    environ: Optional[Mapping[str, str]] = None,
    linker_defaults: bool = True,
) -> Lookup[str]:
    """Find a toolkit library by base name, trying version-decorated file names."""
    platform = platform or Platform.detect()
    names = platform.library_filenames(name, versions)
    return find_library(names, dirs, platform=platform, environ=environ, linker_defaults=linker_defaults)


def find_toolkit_version(
    toolkit_dir: str,
    platform: Optional[Platform] = None,
    timeout: Optional[float] = None,
) -> Lookup[Version]:
    """
    Identify a toolkit's version from its nvcc (or nvdisasm) binary.

    Returns:
        NOT_FOUND when neither binary exists in the toolkit, ERROR when the
        binary exists but its output cannot be parsed
    """
    platform = platform or Platform.detect()
    for tool in (NVCC, NVDISASM):
        binary = find_toolkit_binary(tool, [toolkit_dir], platform=platform)
        if not binary:
            continue
        version = extract_version(binary.value, "--version", NVCC_VERSION_PATTERN, timeout=timeout)
        if version:
            logger.debug(f"CUDA toolkit at {toolkit_dir} identified as {version.value}")
        else:
            logger.warning(version.detail)
        return version
    return Lookup.not_found(f"Your CUDA installation at {toolkit_dir} does not provide nvcc or nvdisasm")


def locate_toolkit(
    explicit_dirs: Iterable[str] = (),
    env_vars: Iterable[str] = TOOLKIT_ENV_VARS,
    default_dirs: Optional[Iterable[str]] = None,
    platform: Optional[Platform] = None,
    environ: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> Lookup[ResolvedToolkit]:
    """
    Locate a local toolkit installation and its core libraries.

    The first root in priority order is selected; library paths are searched
    in that root only, with names decorated by the toolkit version.
    """
    logger.debug("Trying to use local installation...")
    platform = platform or Platform.detect()
    environ = os.environ if environ is None else environ

    dirs = find_toolkit_dirs(explicit_dirs, env_vars, default_dirs, platform, environ)
    if not dirs:
        return dirs
    toolkit_dir = dirs.value[0]
    logger.debug(f"Using CUDA toolkit at {toolkit_dir}")

    version = find_toolkit_version(toolkit_dir, platform=platform, timeout=timeout)
    if not version:
        return Lookup(version.status, None, version.detail, dirs.warnings + version.warnings)

    libraries = {}
    for library in LibraryId.core():
        path = find_toolkit_library(
            library.value, [toolkit_dir], [version.value], platform=platform, linker_defaults=False
        )
        libraries[library] = path.value
        if not path:
            logger.debug(f"{library.value} not found in {toolkit_dir}")

    toolkit = ResolvedToolkit(
        install_prefixes=(toolkit_dir,),
        version=version.value,
        library_paths=libraries,
        source=ToolkitSource.LOCAL,
    )
    logger.debug(f"Found local CUDA {toolkit.version} at {toolkit_dir}")
    return Lookup.found(toolkit, warnings=dirs.warnings)
