"""
Factories for fake CUDA installations.

Builds directory trees that look like toolkits, bundles and compiler
installs. Binaries are shell scripts that print canned version banners.
"""

from pathlib import Path
from typing import Iterable

from cudadeps.discovery.types import LibraryId, Version

CORE_LIBRARIES = tuple(lib.value for lib in LibraryId.core())

NVCC_BANNER = """nvcc: NVIDIA (R) Cuda compiler driver
Copyright (c) 2005-2019 NVIDIA Corporation
Built on Sun_Jul_28_19:07:16_PDT_2019
Cuda compilation tools, release {major}.{minor}, V{major}.{minor}.{patch}"""

NVDISASM_BANNER = """nvdisasm: NVIDIA (R) CUDA disassembler
Copyright (c) 2005-2019 NVIDIA Corporation
Built on Sun_Jul_28_19:06:05_PDT_2019
Cuda compilation tools, release {major}.{minor}, V{major}.{minor}.{patch}"""

GCC_BANNER = """{name} ({distro}) {version}
Copyright (C) 2019 Free Software Foundation, Inc.
This is free software; see the source for copying conditions."""


def write_script(path: Path, output: str, exit_code: int = 0) -> Path:
    """Write an executable shell script that prints `output`."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = ["#!/bin/sh", "cat <<'EOF'", output, "EOF", f"exit {exit_code}"]
    path.write_text("\n".join(lines) + "\n")
    path.chmod(0o755)
    return path


def touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")
    return path


def _banner(template: str, version: str) -> str:
    v = Version.parse(version)
    return template.format(major=v.major, minor=v.minor, patch=v.patch)


def make_toolkit(
    root: Path,
    version: str = "10.1.243",
    libraries: Iterable[str] = CORE_LIBRARIES,
    tool: str = "nvcc",
    lib_subdir: str = "lib64",
) -> Path:
    """
    Create a local toolkit layout: bin/<tool> and lib64/lib<name>.so.<M>.<m>.
    """
    template = NVCC_BANNER if tool == "nvcc" else NVDISASM_BANNER
    write_script(root / "bin" / tool, _banner(template, version))
    v = Version.parse(version)
    for name in libraries:
        touch(root / lib_subdir / f"lib{name}.so.{v.major}.{v.minor}")
    return root


def make_bundle(
    artifacts_root: Path,
    release: str = "10.1",
    version: str = "10.1.243",
    libraries: Iterable[str] = CORE_LIBRARIES,
) -> Path:
    """Create an unpacked CUDA bundle: CUDA<release>/bin/nvdisasm and lib/lib<name>.so."""
    root = artifacts_root / f"CUDA{release}"
    write_script(root / "bin" / "nvdisasm", _banner(NVDISASM_BANNER, version))
    for name in libraries:
        touch(root / "lib" / f"lib{name}.so")
    return root


def make_gcc(bin_dir: Path, name: str, version: str, distro: str = "Ubuntu 9.4.0-1ubuntu1~20.04") -> Path:
    """Create a fake gcc whose first output line follows the real banner format."""
    return write_script(bin_dir / name, GCC_BANNER.format(name=name, distro=distro, version=version))
