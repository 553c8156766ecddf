"""
Platform Capabilities - Naming and Layout Rules

Collects every OS-dependent rule the discovery algorithms need: file name
decoration, default install roots, library subdirectories and linker search
locations. The search, locator and provisioning code only consult this object.
"""

import glob
import os
import re
import struct
import sys
import logging
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence

from .types import Version

logger = logging.getLogger(__name__)

_ROOT_SUFFIX = {
    "bin": re.compile(r"^bin(32|64)?$"),
    "lib": re.compile(r"^lib(32|64)?$"),
}


@dataclass(frozen=True)
class Platform:
    """OS-specific naming and layout rules."""

    system: str  # "linux" | "windows" | "darwin"
    word_size: int = 64

    @classmethod
    def detect(cls) -> "Platform":
        """Build the capability object for the running interpreter."""
        if sys.platform == "win32":
            system = "windows"
        elif sys.platform == "darwin":
            system = "darwin"
        else:
            system = "linux"
        return cls(system=system, word_size=struct.calcsize("P") * 8)

    @property
    def is_windows(self) -> bool:
        return self.system == "windows"

    @property
    def is_apple(self) -> bool:
        return self.system == "darwin"

    @property
    def path_separator(self) -> str:
        return ";" if self.is_windows else ":"

    # ---- Names ----

    def binary_filename(self, name: str) -> str:
        if self.is_windows and not name.lower().endswith(".exe"):
            return f"{name}.exe"
        return name

    def library_filenames(self, name: str, versions: Iterable[Version] = ()) -> List[str]:
        """
        Enumerate file names a library may carry on this platform.

        Unversioned names come first, then names decorated with each version
        (e.g. libcudart.so.10.2, libcudart.so.10 on Linux; cudart64_102.dll,
        cudart64_10.dll on Windows).
        """
        versions = list(versions)
        names = []
        if self.is_windows:
            tag = "64" if self.word_size == 64 else "32"
            for v in versions:
                names.append(f"{name}{tag}_{v.major}{v.minor}.dll")
                names.append(f"{name}{tag}_{v.major}.dll")
            names.append(f"{name}.dll")
        elif self.is_apple:
            names.append(f"lib{name}.dylib")
            for v in versions:
                names.append(f"lib{name}.{v.major}.{v.minor}.dylib")
                names.append(f"lib{name}.{v.major}.dylib")
        else:
            names.append(f"lib{name}.so")
            for v in versions:
                names.append(f"lib{name}.so.{v.major}.{v.minor}")
                names.append(f"lib{name}.so.{v.major}")
        # Keep first occurrence
        return list(dict.fromkeys(names))

    @property
    def driver_library(self) -> str:
        return "nvcuda" if self.is_windows else "cuda"

    def driver_library_filenames(self) -> List[str]:
        """Driver library names, including the SONAME driver-only installs ship (libcuda.so.1)."""
        if self.is_windows:
            return [f"{self.driver_library}.dll"]
        return self.library_filenames(self.driver_library, [Version(1)])

    @property
    def runtime_library(self) -> str:
        return "cudart"

    # ---- Search locations ----

    @property
    def library_subdirs(self) -> Sequence[str]:
        if self.is_windows:
            return ("lib", "lib64", "bin")
        if self.word_size == 64:
            return ("lib", "lib64")
        return ("lib",)

    @property
    def binary_subdirs(self) -> Sequence[str]:
        return ("bin",)

    @property
    def linker_path_var(self) -> str:
        if self.is_windows:
            return "PATH"
        if self.is_apple:
            return "DYLD_LIBRARY_PATH"
        return "LD_LIBRARY_PATH"

    def split_search_path(self, value: Optional[str]) -> List[str]:
        """Split a PATH-like value, dropping empty entries."""
        if not value:
            return []
        return [entry for entry in value.split(self.path_separator) if entry]

    def system_library_dirs(self, environ: Mapping[str, str]) -> List[str]:
        if self.is_windows:
            system_root = environ.get("SystemRoot", r"C:\Windows")
            return [os.path.join(system_root, "System32")]
        if self.is_apple:
            return ["/usr/local/lib", "/usr/lib"]
        dirs = ["/usr/local/lib", "/lib", "/usr/lib"]
        if self.word_size == 64:
            dirs += ["/lib64", "/usr/lib64", "/lib/x86_64-linux-gnu", "/usr/lib/x86_64-linux-gnu"]
        return dirs

    def default_toolkit_roots(self, environ: Mapping[str, str]) -> List[str]:
        """Conventional toolkit install locations, in priority order."""
        if self.is_windows:
            program_files = environ.get("ProgramFiles", r"C:\Program Files")
            base = os.path.join(program_files, "NVIDIA GPU Computing Toolkit", "CUDA")
            # Versioned subdirectories (v10.2, v10.1, ...), newest first
            versioned = sorted(glob.glob(os.path.join(base, "v*")), key=_dir_version, reverse=True)
            return versioned + [base]
        if self.is_apple:
            return ["/Developer/NVIDIA/CUDA", "/usr/local/cuda"]
        return ["/usr/lib/nvidia-cuda-toolkit", "/usr/local/cuda", "/opt/cuda"]

    # ---- Install roots ----

    @staticmethod
    def install_root(path: str, kind: str) -> str:
        """
        Infer an install root from a file found in it.

        Strips a trailing bin/lib segment (optionally suffixed 32/64) from the
        file's directory, e.g. /usr/local/cuda/bin/nvcc -> /usr/local/cuda.
        """
        directory = os.path.dirname(path)
        if _ROOT_SUFFIX[kind].match(os.path.basename(directory)):
            directory = os.path.dirname(directory)
        return directory

    # ---- Bundle layout ----

    def bundle_binary(self, bundle_dir: str, name: str) -> str:
        return os.path.join(bundle_dir, "bin", self.binary_filename(name))

    def bundle_library(self, bundle_dir: str, name: str) -> str:
        if self.is_windows:
            filename = f"{name}.dll"
        elif self.is_apple:
            filename = f"lib{name}.dylib"
        else:
            filename = f"lib{name}.so"
        return os.path.join(bundle_dir, "bin" if self.is_windows else "lib", filename)

    def bundle_library_name(self, name: str, release: Version) -> str:
        """
        Decorate a core library name the way bundles ship it.

        Only Windows decorates: 64_<major> from 10.1 on, 64_<major><minor> before.
        """
        if not self.is_windows:
            return name
        if release >= Version(10, 1):
            return f"{name}64_{release.major}"
        return f"{name}64_{release.major}{release.minor}"


def _dir_version(path: str) -> Version:
    try:
        return Version.parse(os.path.basename(path))
    except ValueError:
        return Version(0)
