import os
import sys
import pytest

# Ensure src directory is importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

# Add tests directory to path for test utilities
TESTS_DIR = os.path.join(PROJECT_ROOT, "tests")
if TESTS_DIR not in sys.path:
    sys.path.append(TESTS_DIR)

from cudadeps import reset_default_resolver
from cudadeps.discovery import path_search
from cudadeps.discovery.platform import Platform


# ============================================================================
# Platform-specific test markers
# ============================================================================

def pytest_collection_modifyitems(config, items):
    """
    Automatically skip tests that run fake shell-script binaries on Windows.
    """
    skip_on_windows = pytest.mark.skipif(
        sys.platform == "win32",
        reason="POSIX-only test - runs shell-script stand-ins for nvcc/gcc",
    )

    for item in items:
        if item.get_closest_marker("posix_only"):
            item.add_marker(skip_on_windows)


def pytest_configure(config):
    config.addinivalue_line("markers", "posix_only: test executes shell scripts as fake tools")


# ============================================================================
# Isolation from the host's CUDA installation
# ============================================================================

@pytest.fixture(autouse=True)
def isolate_linker_defaults(monkeypatch):
    """
    Keep library searches inside the test's own directories.

    The ldconfig cache and the system library directories would otherwise
    expose whatever CUDA installation the test machine happens to have.
    """
    monkeypatch.setattr(path_search, "_ldconfig_cache", lambda: {})
    monkeypatch.setattr(Platform, "system_library_dirs", lambda self, environ: [])
    yield


@pytest.fixture(autouse=True)
def fresh_default_resolver():
    """Discard the process-wide resolver around each test."""
    reset_default_resolver()
    yield
    reset_default_resolver()


@pytest.fixture
def linux():
    return Platform("linux")


@pytest.fixture
def windows():
    return Platform("windows")
