"""
Tests for discovery value types: Version ordering, Lookup results and the
immutable resolved toolkit.
"""

import pytest

from cudadeps.discovery.types import (
    LibraryId,
    Lookup,
    LookupStatus,
    ResolutionState,
    ResolutionStatus,
    ResolvedToolkit,
    ToolkitSource,
    Version,
)


class TestVersion:
    """Test version parsing and ordering."""

    def test_parse_release_defaults_patch_to_zero(self):
        assert Version.parse("10.1") == Version(10, 1, 0)

    def test_parse_full_version(self):
        assert Version.parse("10.2.89") == Version(10, 2, 89)

    def test_parse_major_only(self):
        assert Version.parse("11") == Version(11, 0, 0)

    def test_parse_ignores_prefix_and_suffix(self):
        """Leading 'v' and trailing build tags are tolerated."""
        assert Version.parse("v10.2") == Version(10, 2)
        assert Version.parse("12.1+cu121") == Version(12, 1)

    def test_parse_invalid_raises(self):
        with pytest.raises(ValueError):
            Version.parse("cuda")

    def test_ordering_is_numeric(self):
        """10.0 is newer than 9.2 even though '9' > '1' lexically."""
        assert Version(1, 2, 0) < Version(1, 10, 0) < Version(2, 0, 0)
        assert Version.parse("1.2.0") < Version.parse("1.10.0") < Version.parse("2.0.0")
        assert Version(10, 0) > Version(9, 2)
        assert Version(10, 1, 243) > Version(10, 1, 105)
        assert sorted([Version(9, 0), Version(10, 2), Version(10, 0)]) == [
            Version(9, 0),
            Version(10, 0),
            Version(10, 2),
        ]

    def test_release_truncates_patch(self):
        assert Version(10, 1, 243).release == Version(10, 1)
        assert Version(10, 1, 243).release == Version.parse("10.1")

    def test_full_version_differs_from_release_until_truncated(self):
        assert Version(10, 1, 243) != Version(10, 1)
        assert Version(10, 1, 243).release <= Version(10, 1)

    def test_str(self):
        assert str(Version(10, 1)) == "10.1"
        assert str(Version(10, 1, 243)) == "10.1.243"


class TestLookup:
    """Test the Lookup result type."""

    def test_found_is_truthy(self):
        result = Lookup.found("/usr/local/cuda")
        assert result
        assert result.status is LookupStatus.FOUND
        assert result.unwrap() == "/usr/local/cuda"

    def test_not_found_is_falsy_and_not_error(self):
        result = Lookup.not_found("nothing here")
        assert not result
        assert not result.is_error

    def test_error_is_falsy(self):
        result = Lookup.error("broken binary")
        assert not result
        assert result.is_error

    def test_unwrap_raises_with_detail(self):
        with pytest.raises(LookupError, match="broken binary"):
            Lookup.error("broken binary").unwrap()

    def test_warnings_are_tuples(self):
        result = Lookup.found(1, warnings=["a", "b"])
        assert result.warnings == ("a", "b")


class TestLibraryId:
    def test_core_and_optional_partition(self):
        core = LibraryId.core()
        optional = LibraryId.optionals()
        assert LibraryId.CUBLAS in core
        assert LibraryId.CUDNN not in core
        assert set(optional) == {LibraryId.CUDNN, LibraryId.CUTENSOR}
        assert set(core) | set(optional) == set(LibraryId)


class TestResolvedToolkit:
    """Test immutability of the resolved toolkit."""

    def _toolkit(self):
        return ResolvedToolkit(
            install_prefixes=["/opt/cuda"],
            version=Version(10, 1, 243),
            library_paths={LibraryId.CUBLAS: "/opt/cuda/lib64/libcublas.so"},
            source=ToolkitSource.LOCAL,
        )

    def test_prefixes_become_tuple(self):
        assert self._toolkit().install_prefixes == ("/opt/cuda",)

    def test_library_paths_are_read_only(self):
        toolkit = self._toolkit()
        with pytest.raises(TypeError):
            toolkit.library_paths[LibraryId.CUBLAS] = "/elsewhere"

    def test_with_libraries_returns_copy(self):
        toolkit = self._toolkit()
        extended = toolkit.with_libraries({LibraryId.CUDNN: "/opt/cudnn/libcudnn.so"})
        assert extended.library_paths[LibraryId.CUDNN] == "/opt/cudnn/libcudnn.so"
        assert extended.library_paths[LibraryId.CUBLAS] == "/opt/cuda/lib64/libcublas.so"
        assert LibraryId.CUDNN not in toolkit.library_paths

    def test_release(self):
        assert self._toolkit().release == Version(10, 1)


class TestResolutionState:
    def test_default_is_unresolved(self):
        state = ResolutionState()
        assert state.status is ResolutionStatus.UNRESOLVED
        assert not state.resolved

    def test_structured_log_of_failure_mentions_reason(self):
        state = ResolutionState(ResolutionStatus.FAILED, reason="Could not find CUDA toolkit")
        assert "failed" in state.as_structured_log()
        assert "Could not find CUDA toolkit" in state.as_structured_log()
