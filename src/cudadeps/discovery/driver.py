"""
Driver Capability Detection

Prerequisite collaborators consulted before resolution starts:
- DriverStatus: is an NVIDIA driver present, and which CUDA release does it
  support at most (the ceiling for bundle selection)?
- RuntimeBinder: can the driver library (libcuda / nvcuda) actually be loaded?

Driver information comes from pynvml when available, with nvidia-smi as a
fallback.
"""

import os
import re
import subprocess
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional

from ..common.constants import NVIDIA_SMI
from .loader import decode_cudart_version, load_library
from .path_search import find_binary, find_library
from .platform import Platform
from .types import Lookup, Version

logger = logging.getLogger(__name__)

_SMI_DRIVER_RE = re.compile(r"Driver Version:\s*([0-9.]+)")
_SMI_CUDA_RE = re.compile(r"CUDA Version:\s*(\d+)\.(\d+)")


@dataclass
class DriverInfo:
    """What the installed NVIDIA driver reports about itself."""

    driver_version: str
    cuda_release: Optional[Version]
    gpu_names: List[str] = field(default_factory=list)


def _text(value) -> str:
    # pynvml returns bytes on older releases
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def probe_nvml() -> Optional[DriverInfo]:
    """
    Use pynvml (if available) to query the driver.

    Returns:
        DriverInfo or None if NVML is unavailable
    """
    try:
        import pynvml

        pynvml.nvmlInit()
        try:
            driver_version = _text(pynvml.nvmlSystemGetDriverVersion())
            cuda_release = decode_cudart_version(int(pynvml.nvmlSystemGetCudaDriverVersion()))

            gpu_names = []
            for i in range(pynvml.nvmlDeviceGetCount()):
                handle = pynvml.nvmlDeviceGetHandleByIndex(i)
                gpu_names.append(_text(pynvml.nvmlDeviceGetName(handle)))
        finally:
            pynvml.nvmlShutdown()

        return DriverInfo(driver_version, cuda_release, gpu_names) if driver_version else None

    except ImportError as e:
        logger.debug(f"pynvml not available: {e}")
        return None
    except Exception as e:
        # pynvml raises NVMLError subclasses when no driver is loaded
        logger.debug(f"NVML query failed: {e}")
        return None


def parse_nvidia_smi(output: str) -> Optional[DriverInfo]:
    """Parse the banner of plain `nvidia-smi` output."""
    driver = _SMI_DRIVER_RE.search(output)
    if not driver:
        return None
    cuda = _SMI_CUDA_RE.search(output)
    cuda_release = Version(int(cuda.group(1)), int(cuda.group(2))) if cuda else None
    return DriverInfo(driver.group(1), cuda_release)


def probe_nvidia_smi(timeout: float = 5) -> Optional[DriverInfo]:
    """
    Use the nvidia-smi command to query the driver.

    Returns:
        DriverInfo or None if nvidia-smi is unavailable
    """
    try:
        result = subprocess.run(
            [NVIDIA_SMI],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=True,
            creationflags=subprocess.CREATE_NO_WINDOW if os.name == "nt" else 0,
        )
        info = parse_nvidia_smi(result.stdout)

        names = subprocess.run(
            [NVIDIA_SMI, "--query-gpu=name", "--format=csv,noheader"],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
            creationflags=subprocess.CREATE_NO_WINDOW if os.name == "nt" else 0,
        )
        if info is not None:
            info.gpu_names = [name.strip() for name in names.stdout.splitlines() if name.strip()]
        return info

    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"nvidia-smi not available: {e}")
        return None


def capability_probe() -> Optional[DriverInfo]:
    """Probe the driver via NVML, falling back to nvidia-smi."""
    info = probe_nvml()
    if info is None:
        info = probe_nvidia_smi()
    return info


class Prerequisite:
    """A collaborator that must be functional before resolution proceeds."""

    name = "prerequisite"

    #: Why the collaborator is not functional; empty while it is
    reason = ""

    def functional(self, show_reason: bool = False) -> bool:
        raise NotImplementedError


class DriverStatus(Prerequisite):
    """Reports driver presence and the maximum supported CUDA release."""

    name = "driver"

    def __init__(self, probe: Callable[[], Optional[DriverInfo]] = capability_probe):
        self._probe = probe
        self._info: Optional[DriverInfo] = None
        self._probed = False

    @property
    def info(self) -> Optional[DriverInfo]:
        if not self._probed:
            self._info = self._probe()
            self._probed = True
            if self._info is not None:
                logger.debug(
                    f"NVIDIA driver {self._info.driver_version} supports CUDA {self._info.cuda_release}"
                )
        return self._info

    def functional(self, show_reason: bool = False) -> bool:
        if self.info is None:
            self.reason = "No NVIDIA driver detected (NVML and nvidia-smi unavailable)"
            if show_reason:
                logger.warning(self.reason)
            return False
        return True

    def max_release(self) -> Optional[Version]:
        """Highest CUDA release the driver supports, if it reports one."""
        info = self.info
        return info.cuda_release if info else None


class RuntimeBinder(Prerequisite):
    """Checks that the driver library can be located and loaded."""

    name = "runtime"

    def __init__(
        self,
        platform: Optional[Platform] = None,
        environ: Optional[Mapping[str, str]] = None,
        loader: Callable[[str], object] = load_library,
    ):
        self._platform = platform or Platform.detect()
        self._environ = environ
        self._loader = loader
        self._result: Optional[Lookup[str]] = None

    def _bind(self) -> Lookup[str]:
        library = find_library(
            self._platform.driver_library_filenames(),
            platform=self._platform,
            environ=self._environ,
        )
        if not library:
            return library
        try:
            self._loader(library.value)
        except OSError as e:
            return Lookup.error(f"Could not load driver library {library.value}: {e}")
        return library

    def functional(self, show_reason: bool = False) -> bool:
        if self._result is None:
            self._result = self._bind()
        if not self._result:
            self.reason = f"CUDA driver library is not usable: {self._result.detail}"
            if show_reason:
                logger.warning(self.reason)
        return bool(self._result)


def find_driver(platform: Optional[Platform] = None, environ: Optional[Mapping[str, str]] = None) -> Lookup[str]:
    """
    Locate the driver install root from the driver library and nvidia-smi.

    Multiple distinct roots produce a warning; the first is selected.
    """
    platform = platform or Platform.detect()
    environ = os.environ if environ is None else environ

    dirs = []
    libcuda = find_library(platform.driver_library_filenames(), platform=platform, environ=environ)
    if libcuda:
        dirs.append(platform.install_root(libcuda.value, "lib"))
    smi = find_binary(platform.binary_filename(NVIDIA_SMI), platform=platform, environ=environ)
    if smi:
        dirs.append(platform.install_root(smi.value, "bin"))

    dirs = [d for d in dict.fromkeys(dirs) if os.path.isdir(d)]
    if not dirs:
        return Lookup.not_found("Could not find CUDA driver")

    warnings = ()
    if len(dirs) > 1:
        message = f"Found multiple CUDA driver installations: {', '.join(dirs)}"
        logger.warning(message)
        warnings = (message,)

    logger.debug(f"Using CUDA driver at {dirs[0]}")
    return Lookup.found(dirs[0], warnings=warnings)
