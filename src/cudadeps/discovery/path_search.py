"""
Path Search - Locate Binaries and Shared Libraries

Generic "find a named file given prefixes, PATH and the linker's default
locations" primitives. Names are taken literally; callers decorate them with
Platform.library_filenames / Platform.binary_filename.
"""

import os
import re
import subprocess
import logging
from functools import lru_cache
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .platform import Platform
from .types import Lookup

logger = logging.getLogger(__name__)

_LDCONFIG_LINE = re.compile(r"^\s*(\S+)\s+\(.*\)\s+=>\s+(\S+)\s*$")


def _as_list(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (str, os.PathLike)):
        return [os.fspath(value)]
    return [os.fspath(v) for v in value]


@lru_cache(maxsize=1)
def _ldconfig_cache() -> Dict[str, List[str]]:
    """
    Parse `ldconfig -p` into a name -> paths mapping (Linux only).

    Returns an empty mapping when ldconfig is unavailable.
    """
    try:
        result = subprocess.run(
            ["ldconfig", "-p"],
            capture_output=True,
            text=True,
            timeout=10,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"ldconfig not available: {e}")
        return {}

    cache: Dict[str, List[str]] = {}
    for line in result.stdout.splitlines():
        match = _LDCONFIG_LINE.match(line)
        if match:
            cache.setdefault(match.group(1), []).append(match.group(2))
    return cache


def library_locations(prefixes: Sequence[str], platform: Platform) -> List[str]:
    """Prefix-derived library locations: each prefix, then its library subdirs."""
    locations = []
    for prefix in prefixes:
        locations.append(prefix)
        for subdir in platform.library_subdirs:
            locations.append(os.path.join(prefix, subdir))
    return locations


def binary_locations(prefixes: Sequence[str], platform: Platform, environ: Mapping[str, str]) -> List[str]:
    """Each prefix, then its bin subdir, then the PATH entries."""
    locations = []
    for prefix in prefixes:
        locations.append(prefix)
        for subdir in platform.binary_subdirs:
            locations.append(os.path.join(prefix, subdir))
    locations.extend(platform.split_search_path(environ.get("PATH")))
    return locations


def _probe(locations: Iterable[str], names: Sequence[str]) -> Optional[str]:
    for location in locations:
        for name in names:
            candidate = os.path.join(location, name)
            if os.path.isfile(candidate):
                return candidate
    return None


def find_library(
    names,
    prefixes=(),
    platform: Optional[Platform] = None,
    environ: Optional[Mapping[str, str]] = None,
    linker_defaults: bool = True,
) -> Lookup[str]:
    """
    Find a shared library by any of its acceptable file names.

    Probes the prefixes (and their lib subdirectories) first, then the
    linker's default mechanism: the linker path variable, the ldconfig cache
    (Linux) and the system library directories.

    Args:
        names: One or more literal file names (e.g. "libcudart.so.10.2")
        prefixes: Directories to probe before the linker defaults
        platform: Platform rules (detected if omitted)
        environ: Environment mapping (os.environ if omitted)
        linker_defaults: When False, only the prefixes are probed

    Returns:
        Lookup with the real absolute path of the first match
    """
    names = _as_list(names)
    prefixes = _as_list(prefixes)
    platform = platform or Platform.detect()
    environ = os.environ if environ is None else environ
    logger.debug(f"Looking for {names} library in {prefixes}")

    path = _probe(library_locations(prefixes, platform), names)

    if path is None and linker_defaults:
        path = _probe(platform.split_search_path(environ.get(platform.linker_path_var)), names)

    if path is None and linker_defaults and platform.system == "linux":
        cache = _ldconfig_cache()
        for name in names:
            existing = [p for p in cache.get(name, []) if os.path.isfile(p)]
            if existing:
                path = existing[0]
                break

    if path is None and linker_defaults:
        path = _probe(platform.system_library_dirs(environ), names)

    if path is None:
        return Lookup.not_found(f"Could not find any of {names}")

    # Bind the real file so later loads do not depend on the ambient linker environment
    path = os.path.realpath(path)
    logger.debug(f"Using {names[0]} library at {path}")
    return Lookup.found(path)


def find_binary(
    name: str,
    prefixes=(),
    platform: Optional[Platform] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Lookup[str]:
    """
    Find an executable by name in the prefixes (and their bin dirs), then PATH.

    Args:
        name: Literal file name (e.g. "nvcc" or "nvcc.exe")
        prefixes: Directories to probe before PATH
        platform: Platform rules (detected if omitted)
        environ: Environment mapping (os.environ if omitted)

    Returns:
        Lookup with the absolute path of the first match
    """
    prefixes = _as_list(prefixes)
    platform = platform or Platform.detect()
    environ = os.environ if environ is None else environ
    logger.debug(f"Looking for {name} binary in {prefixes}")

    path = _probe(binary_locations(prefixes, platform, environ), [name])
    if path is None:
        return Lookup.not_found(f"Could not find {name} binary")

    path = os.path.abspath(path)
    logger.debug(f"Using {name} binary at {path}")
    return Lookup.found(path)
