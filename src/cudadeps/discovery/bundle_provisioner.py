"""
Bundle Provisioner - Derive a Toolkit from a Pre-Packaged Bundle

A bundle is a self-contained directory tree with a fixed layout: binaries
under bin/, libraries under bin/ (Windows) or lib/ (elsewhere). Paths are
derived from that convention; nothing inside a bundle is searched for.
"""

import os
import logging
from pathlib import Path
from typing import Callable, Optional

from ..common.constants import CUDA_ARTIFACT, CUDNN_ARTIFACT, CUTENSOR_ARTIFACT, NVDISASM
from ..common.errors import ProvisionError
from .loader import load_library
from .platform import Platform
from .types import LibraryId, Lookup, ResolvedToolkit, ToolkitSource, Version
from .version_extractor import NVCC_VERSION_PATTERN, extract_version

logger = logging.getLogger(__name__)

_OPTIONAL_ARTIFACTS = {
    LibraryId.CUDNN: CUDNN_ARTIFACT,
    LibraryId.CUTENSOR: CUTENSOR_ARTIFACT,
}


def artifact_name(template: str, release: Version) -> str:
    return template.format(release=f"{release.major}.{release.minor}")


class BundleProvisioner:
    """Turns a toolkit release into a ResolvedToolkit backed by a bundle."""

    def __init__(
        self,
        fetch: Callable[[str], Path],
        platform: Optional[Platform] = None,
        loader: Callable[[str], object] = load_library,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            fetch: Collaborator returning the directory of a named artifact;
                   raises ProvisionError or OSError when it cannot supply it
            platform: Platform rules (detected if omitted)
            loader: Loads a library by path; raises OSError if invalid
            timeout: Timeout for the nvdisasm version probe
        """
        self._fetch = fetch
        self._platform = platform or Platform.detect()
        self._loader = loader
        self._timeout = timeout

    def _fetch_dir(self, name: str) -> Lookup[str]:
        try:
            return Lookup.found(os.fspath(self._fetch(name)))
        except (ProvisionError, OSError) as e:
            return Lookup.error(f"Could not obtain artifact {name}: {e}")

    def _load(self, path: str) -> Optional[str]:
        """Load a library, returning an error description on failure."""
        try:
            self._loader(path)
        except OSError as e:
            return f"Could not load {path}: {e}"
        return None

    def provision(self, release: Version) -> Lookup[ResolvedToolkit]:
        """
        Obtain the CUDA bundle for a release and derive its paths.

        Returns:
            ERROR lookup when the bundle cannot be fetched, identified or loaded
        """
        release = release.release
        bundle = self._fetch_dir(artifact_name(CUDA_ARTIFACT, release))
        if not bundle:
            return bundle
        bundle_dir = bundle.value

        nvdisasm = self._platform.bundle_binary(bundle_dir, NVDISASM)
        if not os.path.isfile(nvdisasm):
            return Lookup.error(f"Bundle at {bundle_dir} does not contain {nvdisasm}")
        version = extract_version(nvdisasm, "--version", NVCC_VERSION_PATTERN, timeout=self._timeout)
        if not version:
            return version

        libraries = {}
        for library in LibraryId.core():
            name = self._platform.bundle_library_name(library.value, release)
            path = self._platform.bundle_library(bundle_dir, name)
            error = self._load(path)
            if error:
                return Lookup.error(error)
            libraries[library] = path

        logger.debug(f"Using CUDA {version.value} from an artifact at {bundle_dir}")
        return Lookup.found(
            ResolvedToolkit(
                install_prefixes=(bundle_dir,),
                version=version.value,
                library_paths=libraries,
                source=ToolkitSource.BUNDLE,
            )
        )

    def provision_optional(self, library: LibraryId, release: Version) -> Lookup[str]:
        """Obtain the bundle of an optional library built for a CUDA release."""
        template = _OPTIONAL_ARTIFACTS.get(library)
        if template is None:
            return Lookup.not_found(f"{library.value} is not shipped as a bundle")

        bundle = self._fetch_dir(artifact_name(template, release.release))
        if not bundle:
            logger.debug(f"Could not use {library.value} from artifacts: {bundle.detail}")
            return bundle

        name = library.value
        if library is LibraryId.CUDNN and self._platform.is_windows:
            name = "cudnn64_7"
        path = self._platform.bundle_library(bundle.value, name)
        error = self._load(path)
        if error:
            return Lookup.error(error)

        logger.debug(f"Using {library.value} from an artifact at {bundle.value}")
        return Lookup.found(path)
