"""
Tests for the diagnostics CLI.
"""

import json
import logging

import pytest
from unittest.mock import Mock, patch

from cudadeps.cli.diagnostics_handler import collect_diagnostics, main, parse_arguments
from cudadeps.common.config import ResolverConfig
from cudadeps.common.errors import HostCompilerError
from cudadeps.discovery.driver import DriverInfo, DriverStatus, Prerequisite
from cudadeps.discovery.resolver import ToolkitResolver
from cudadeps.discovery.types import LibraryId, Lookup, ResolvedToolkit, ToolkitSource, Version


class ReadyRuntime(Prerequisite):
    name = "runtime"

    def functional(self, show_reason=False):
        return True


@pytest.fixture(autouse=True)
def restore_package_logger():
    """main() installs a console handler; remove it so later tests see a clean logger."""
    package_logger = logging.getLogger("cudadeps")
    handlers = list(package_logger.handlers)
    yield
    for handler in list(package_logger.handlers):
        if handler not in handlers:
            package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


def make_resolver(tmp_path, toolkit=None, driver_info=None):
    config = ResolverConfig(str(tmp_path / "config.ini"), environ={})
    config.use_bundles = False
    config.bundle_dir = str(tmp_path / "artifacts")

    if toolkit is None:
        locate = Mock(return_value=Lookup.not_found("Could not find CUDA toolkit; specify using CUDA_PATH"))
    else:
        locate = Mock(return_value=Lookup.found(toolkit))

    return ToolkitResolver(
        config=config,
        driver=DriverStatus(probe=lambda: driver_info),
        runtime=ReadyRuntime(),
        provisioner=Mock(),
        locate=locate,
        library_probe=lambda library, path: None,
        environ={},
    )


def local_toolkit():
    paths = {lib: f"/opt/cuda/lib64/lib{lib.value}.so.10" for lib in LibraryId.core()}
    return ResolvedToolkit(("/opt/cuda",), Version(10, 1, 243), paths, ToolkitSource.LOCAL)


DRIVER = DriverInfo("440.33.01", Version(10, 2), ["Tesla V100-SXM2-16GB"])


class TestParseArguments:
    def test_defaults(self):
        args = parse_arguments([])
        assert args.json is False
        assert args.compiler is False
        assert args.config is None

    def test_flags(self):
        args = parse_arguments(["--json", "--compiler", "--config", "/etc/cudadeps.ini", "--log-level", "DEBUG"])
        assert args.json and args.compiler
        assert args.config == "/etc/cudadeps.ini"
        assert args.log_level == "DEBUG"


class TestCollectDiagnostics:
    """Test the report dictionary."""

    def test_functional_report(self, tmp_path):
        (tmp_path / "artifacts" / "CUDA10.2").mkdir(parents=True)
        resolver = make_resolver(tmp_path, toolkit=local_toolkit(), driver_info=DRIVER)

        report = collect_diagnostics(resolver)

        assert report["functional"] is True
        assert report["driver"]["max_cuda_release"] == "10.2"
        assert report["driver"]["gpu_names"] == ["Tesla V100-SXM2-16GB"]
        assert report["artifacts"][0]["name"] == "CUDA10.2"
        assert report["toolkit"] == {"version": "10.1.243", "source": "local", "prefixes": ["/opt/cuda"]}
        assert report["libraries"]["cublas"] == "/opt/cuda/lib64/libcublas.so.10"
        assert report["libraries"]["cudnn"] is None
        assert "toolchain" not in report

    def test_failed_report(self, tmp_path):
        resolver = make_resolver(tmp_path, driver_info=None)

        report = collect_diagnostics(resolver)

        assert report["functional"] is False
        assert report["driver"] == {"detected": False}
        assert "No NVIDIA driver" in report["reason"]
        assert report["toolkit"] is None

    def test_toolchain_error_reported(self, tmp_path):
        resolver = make_resolver(tmp_path, toolkit=local_toolkit(), driver_info=DRIVER)
        error = HostCompilerError("No compatible gcc", toolkit_version=Version(10, 1, 243))

        with patch("cudadeps.discovery.resolver.find_toolchain", side_effect=error):
            report = collect_diagnostics(resolver, include_compiler=True)

        assert report["functional"] is True
        assert "No compatible gcc" in report["toolchain"]["error"]


class TestMain:
    def test_text_output(self, tmp_path, capsys):
        resolver = make_resolver(tmp_path, toolkit=local_toolkit(), driver_info=DRIVER)

        assert main([], resolver=resolver) == 0

        out = capsys.readouterr().out
        assert "=== CUDA Diagnostics ===" in out
        assert "CUDA version: 10.1.243 (local)" in out
        assert "Driver version: 440.33.01" in out
        assert "No artifacts installed" in out

    def test_json_output(self, tmp_path, capsys):
        resolver = make_resolver(tmp_path, toolkit=local_toolkit(), driver_info=DRIVER)

        assert main(["--json"], resolver=resolver) == 0

        report = json.loads(capsys.readouterr().out)
        assert report["toolkit"]["version"] == "10.1.243"

    def test_not_functional_exit_code(self, tmp_path, capsys):
        resolver = make_resolver(tmp_path, driver_info=DRIVER)

        assert main([], resolver=resolver) == 1

        out = capsys.readouterr().out
        assert "Not functional: Could not find CUDA toolkit" in out
