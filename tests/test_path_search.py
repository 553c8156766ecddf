"""
Tests for binary and library path search.
"""

import os

import pytest

from cudadeps.discovery import path_search
from cudadeps.discovery.path_search import find_binary, find_library

from test_utils.toolkit_factory import touch, write_script


class TestFindLibrary:
    """Test library search order and results."""

    def test_found_in_prefix_subdir(self, tmp_path, linux):
        lib = touch(tmp_path / "cuda" / "lib64" / "libcudart.so.10.1")

        result = find_library(["libcudart.so", "libcudart.so.10.1"], [tmp_path / "cuda"], platform=linux, environ={})
        assert result
        assert result.value == os.path.realpath(lib)

    def test_found_directly_in_prefix(self, tmp_path, linux):
        touch(tmp_path / "libcublas.so")
        result = find_library("libcublas.so", tmp_path, platform=linux, environ={})
        assert result.value == os.path.realpath(tmp_path / "libcublas.so")

    def test_resolves_symlinks(self, tmp_path, linux):
        real = touch(tmp_path / "lib" / "libcudart.so.10.1.243")
        os.symlink(real, tmp_path / "lib" / "libcudart.so")

        result = find_library("libcudart.so", [tmp_path], platform=linux, environ={})
        assert result.value == os.path.realpath(real)

    def test_prefixes_take_precedence_over_linker_path(self, tmp_path, linux):
        preferred = touch(tmp_path / "prefix" / "lib" / "libcufft.so")
        touch(tmp_path / "ld" / "libcufft.so")

        result = find_library(
            "libcufft.so",
            [tmp_path / "prefix"],
            platform=linux,
            environ={"LD_LIBRARY_PATH": str(tmp_path / "ld")},
        )
        assert result.value == os.path.realpath(preferred)

    def test_falls_back_to_linker_path(self, tmp_path, linux):
        lib = touch(tmp_path / "ld" / "libcurand.so")
        result = find_library(
            "libcurand.so", [tmp_path / "empty"], platform=linux, environ={"LD_LIBRARY_PATH": f"::{tmp_path / 'ld'}"}
        )
        assert result.value == os.path.realpath(lib)

    def test_falls_back_to_ldconfig_cache(self, tmp_path, linux, monkeypatch):
        lib = touch(tmp_path / "system" / "libcuda.so.1")
        monkeypatch.setattr(path_search, "_ldconfig_cache", lambda: {"libcuda.so.1": [str(lib)]})

        result = find_library(["libcuda.so", "libcuda.so.1"], platform=linux, environ={})
        assert result.value == os.path.realpath(lib)

    def test_ldconfig_entries_for_missing_files_are_ignored(self, tmp_path, linux, monkeypatch):
        monkeypatch.setattr(path_search, "_ldconfig_cache", lambda: {"libcuda.so": [str(tmp_path / "gone.so")]})
        assert not find_library("libcuda.so", platform=linux, environ={})

    def test_linker_defaults_can_be_disabled(self, tmp_path, linux, monkeypatch):
        cached = touch(tmp_path / "system" / "libcublas.so")
        touch(tmp_path / "ld" / "libcublas.so")
        monkeypatch.setattr(path_search, "_ldconfig_cache", lambda: {"libcublas.so": [str(cached)]})
        monkeypatch.setattr(type(linux), "system_library_dirs", lambda self, environ: [str(tmp_path / "system")])
        environ = {"LD_LIBRARY_PATH": str(tmp_path / "ld")}

        assert find_library("libcublas.so", [tmp_path / "empty"], platform=linux, environ=environ)
        assert not find_library(
            "libcublas.so", [tmp_path / "empty"], platform=linux, environ=environ, linker_defaults=False
        )

    def test_first_name_in_first_location_wins(self, tmp_path, linux):
        touch(tmp_path / "lib" / "libcusparse.so.10")
        first = touch(tmp_path / "libcusparse.so.10")

        result = find_library(["libcusparse.so", "libcusparse.so.10"], [tmp_path], platform=linux, environ={})
        assert result.value == os.path.realpath(first)

    def test_not_found_is_not_an_error(self, tmp_path, linux):
        result = find_library("libcusolver.so", [tmp_path], platform=linux, environ={})
        assert not result
        assert not result.is_error
        assert "libcusolver.so" in result.detail

    def test_directories_do_not_match(self, tmp_path, linux):
        (tmp_path / "lib" / "libcublas.so").mkdir(parents=True)
        assert not find_library("libcublas.so", [tmp_path], platform=linux, environ={})


class TestFindBinary:
    """Test binary search in prefixes and PATH."""

    def test_found_in_prefix_bin(self, tmp_path, linux):
        nvcc = touch(tmp_path / "cuda" / "bin" / "nvcc")
        result = find_binary("nvcc", [tmp_path / "cuda"], platform=linux, environ={})
        assert result.value == os.path.abspath(nvcc)

    def test_prefix_takes_precedence_over_path(self, tmp_path, linux):
        preferred = touch(tmp_path / "cuda" / "bin" / "nvcc")
        touch(tmp_path / "other" / "nvcc")

        result = find_binary("nvcc", [tmp_path / "cuda"], platform=linux, environ={"PATH": str(tmp_path / "other")})
        assert result.value == os.path.abspath(preferred)

    def test_falls_back_to_path(self, tmp_path, linux):
        gcc = touch(tmp_path / "usr" / "bin" / "gcc")
        result = find_binary("gcc", platform=linux, environ={"PATH": f":{tmp_path / 'usr' / 'bin'}:"})
        assert result.value == os.path.abspath(gcc)

    def test_empty_environment_means_prefixes_only(self, tmp_path, linux):
        assert not find_binary("nvcc", [tmp_path], platform=linux, environ={})

    @pytest.mark.posix_only
    def test_found_binary_is_the_script(self, tmp_path, linux):
        script = write_script(tmp_path / "bin" / "nvdisasm", "hello")
        result = find_binary("nvdisasm", [tmp_path], platform=linux, environ={})
        assert result.value == os.path.abspath(script)
