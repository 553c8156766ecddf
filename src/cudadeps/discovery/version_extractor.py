"""
Version Extraction - Parse Tool Versions from Subprocess Output

Runs a located binary with a version flag and extracts a Version from its
combined stdout/stderr.
"""

import re
import subprocess
import logging
from typing import Optional, Pattern, Union

from ..common.constants import DEFAULT_PROBE_TIMEOUT
from .types import Lookup, Version

logger = logging.getLogger(__name__)

# "Cuda compilation tools, release 10.2, V10.2.89" (nvcc, nvdisasm)
NVCC_VERSION_PATTERN = re.compile(r"\bV(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)\b")

# "Microsoft (R) C/C++ Optimizing Compiler Version 19.00.24215.1 for x64"
MSVC_VERSION_PATTERN = re.compile(r"Version\s+(\d+(?:\.\d+)?(?:\.\d+)?)", re.IGNORECASE)

# "Apple clang version 12.0.0 (clang-1200.0.32.29)"
CLANG_VERSION_PATTERN = re.compile(r"version\s+(\d+(?:\.\d+)?(?:\.\d+)?)", re.IGNORECASE)


def gcc_version_pattern(name: str) -> Pattern:
    """First line of `gcc --version`, e.g. "gcc-9 (Ubuntu 9.4.0-1ubuntu1) 9.4.0"."""
    return re.compile(rf"^{re.escape(name)} \(.*\) ([0-9.]+)")


def parse_version_output(output: str, pattern: Union[str, Pattern]) -> Optional[Version]:
    """
    Apply a version pattern to tool output.

    The pattern either has named groups major/minor (patch optional) or a
    single group holding a dotted version string.
    """
    if isinstance(pattern, str):
        pattern = re.compile(pattern)
    match = pattern.search(output)
    if match is None:
        return None

    groups = match.groupdict()
    try:
        if groups.get("major") is not None:
            return Version(
                int(groups["major"]),
                int(groups.get("minor") or 0),
                int(groups.get("patch") or 0),
            )
        return Version.parse(match.group(1))
    except (IndexError, ValueError):
        return None


def run_version_command(binary_path: str, flag: Optional[str] = "--version", timeout: Optional[float] = None) -> str:
    """
    Run `binary flag` and return stdout followed by stderr.

    Raises:
        OSError: Binary cannot be executed
        subprocess.SubprocessError: Timeout expired
    """
    command = [binary_path] if not flag else [binary_path, flag]
    result = subprocess.run(
        command,
        capture_output=True,
        text=True,
        timeout=timeout or DEFAULT_PROBE_TIMEOUT,
        check=False,
    )
    return (result.stdout or "") + (result.stderr or "")


def extract_version(
    binary_path: str,
    flag: Optional[str] = "--version",
    pattern: Union[str, Pattern] = NVCC_VERSION_PATTERN,
    timeout: Optional[float] = None,
    first_line_only: bool = False,
) -> Lookup[Version]:
    """
    Determine a tool's version by running it.

    Args:
        binary_path: Path to an existing binary
        flag: Version flag (None to run the binary without arguments)
        pattern: Regex with major/minor/patch groups or a single version group
        timeout: Seconds before the probe is abandoned
        first_line_only: Only match against the first output line

    Returns:
        Lookup with the parsed Version, or an ERROR lookup when the binary
        could not run or its output did not match
    """
    try:
        output = run_version_command(binary_path, flag, timeout)
    except subprocess.TimeoutExpired:
        return Lookup.error(f"Timed out running {binary_path} {flag or ''}".rstrip())
    except (OSError, subprocess.SubprocessError) as e:
        return Lookup.error(f"Could not run {binary_path}: {e}")

    text = output
    if first_line_only:
        lines = output.splitlines()
        text = lines[0].rstrip() if lines else ""

    version = parse_version_output(text, pattern)
    if version is None:
        snippet = text.strip()[:200]
        return Lookup.error(f"Could not parse version of {binary_path} from output: {snippet!r}")

    logger.debug(f"{binary_path} identified as version {version}")
    return Lookup.found(version)
