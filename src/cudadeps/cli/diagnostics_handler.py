"""
CLI Handler for toolkit diagnostics

Resolves the toolkit the way a library consumer would and prints what was
found: driver capability, installed artifacts, selected toolkit, library
paths, warnings and optionally the host toolchain.
"""

import argparse
import json
import os
import sys
from typing import Any, Dict, List, Optional

from ..common.config import ResolverConfig
from ..common.constants import ENV_LOG_LEVEL
from ..common.errors import CudaDepsError
from ..common.logging_utils import setup_logging
from ..discovery.artifact_store import ArtifactStore
from ..discovery.resolver import ToolkitResolver
from ..discovery.types import LibraryId


def _driver_report(resolver: ToolkitResolver) -> Dict[str, Any]:
    info = resolver.driver.info
    if info is None:
        return {"detected": False}
    return {
        "detected": True,
        "driver_version": info.driver_version,
        "max_cuda_release": str(info.cuda_release) if info.cuda_release else None,
        "gpu_names": list(info.gpu_names),
    }


def _artifacts_report(config: ResolverConfig) -> List[Dict[str, Any]]:
    store = ArtifactStore(config.bundle_dir or None)
    return [
        {"name": a["name"], "path": str(a["path"]), "has_install_json": a["has_install_json"]}
        for a in store.installed()
    ]


def collect_diagnostics(resolver: ToolkitResolver, include_compiler: bool = False) -> Dict[str, Any]:
    """Resolve and gather everything the diagnostics output shows."""
    functional = resolver.functional(show_reason=True)
    state = resolver.state

    report: Dict[str, Any] = {
        "functional": functional,
        "reason": state.reason,
        "config_path": resolver.config.config_path,
        "driver": _driver_report(resolver),
        "artifacts": _artifacts_report(resolver.config),
        "toolkit": None,
        "libraries": {},
        "warnings": list(state.warnings),
    }

    if functional:
        toolkit = state.toolkit
        report["toolkit"] = {
            "version": str(toolkit.version),
            "source": toolkit.source.value,
            "prefixes": list(toolkit.install_prefixes),
        }
        report["libraries"] = {lib.value: toolkit.library_paths.get(lib) for lib in LibraryId}

        if include_compiler:
            try:
                toolchain = resolver.toolchain()
                report["toolchain"] = {
                    "cuda_compiler": toolchain.cuda_compiler,
                    "cuda_version": str(toolchain.cuda_version),
                    "host_compiler": toolchain.host_compiler,
                    "host_version": str(toolchain.host_version),
                }
            except CudaDepsError as e:
                report["toolchain"] = {"error": str(e)}

    return report


def print_diagnostics(report: Dict[str, Any], out=None):
    """Print a human-readable diagnostics report."""
    out = out or sys.stdout

    def emit(line=""):
        print(line, file=out)

    emit("=== CUDA Diagnostics ===\n")
    emit(f"Configuration: {report['config_path']}")

    emit("\n=== Driver ===")
    driver = report["driver"]
    if driver["detected"]:
        emit(f"Driver version: {driver['driver_version']}")
        emit(f"Max CUDA release: {driver['max_cuda_release'] or 'Unknown'}")
        for name in driver["gpu_names"]:
            emit(f"GPU: {name}")
    else:
        emit("NVIDIA driver: Not detected")

    emit("\n=== Artifacts ===")
    if report["artifacts"]:
        for artifact in report["artifacts"]:
            marker = "" if artifact["has_install_json"] else " [no install.json]"
            emit(f"  - {artifact['name']}: {artifact['path']}{marker}")
    else:
        emit("No artifacts installed")

    emit("\n=== Toolkit ===")
    toolkit = report["toolkit"]
    if toolkit:
        emit(f"CUDA version: {toolkit['version']} ({toolkit['source']})")
        for prefix in toolkit["prefixes"]:
            emit(f"Prefix: {prefix}")
        emit("\nLibraries:")
        for name, path in report["libraries"].items():
            emit(f"  - {name}: {path or 'Not found'}")
    else:
        emit(f"Not functional: {report['reason']}")

    if report["warnings"]:
        emit("\n=== Warnings ===")
        for warning in report["warnings"]:
            emit(f"  - {warning}")

    toolchain = report.get("toolchain")
    if toolchain:
        emit("\n=== Toolchain ===")
        if "error" in toolchain:
            emit(f"ERROR: {toolchain['error']}")
        else:
            emit(f"nvcc: {toolchain['cuda_compiler']} ({toolchain['cuda_version']})")
            emit(f"Host compiler: {toolchain['host_compiler']} ({toolchain['host_version']})")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="cudadeps", description="Show how the CUDA toolkit is resolved.")
    parser.add_argument("--json", action="store_true", default=False, help="Print the report as JSON.")
    parser.add_argument(
        "--compiler", action="store_true", default=False, help="Also match a host compiler for nvcc."
    )
    parser.add_argument("--config", default=None, help="Path to a config.ini file.")
    parser.add_argument("--log-level", default=None, help="Override the configured log level.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None, resolver: Optional[ToolkitResolver] = None) -> int:
    """Run diagnostics. Returns 0 when the toolkit is functional, 1 otherwise."""
    args = parse_arguments(argv)

    if resolver is None:
        environ = dict(os.environ)
        if args.log_level:
            environ[ENV_LOG_LEVEL] = args.log_level
        config = ResolverConfig(args.config, environ=environ)
        setup_logging(config.log_level)
        resolver = ToolkitResolver(config=config, environ=environ)
    else:
        setup_logging(resolver.config.log_level)

    report = collect_diagnostics(resolver, include_compiler=args.compiler)
    if args.json:
        print(json.dumps(report, indent=2))
    else:
        print_diagnostics(report)

    return 0 if report["functional"] else 1
