"""
Toolkit Resolver - Lazy, Memoized Toolkit Resolution

Owns the process-wide resolution state. The first accessor call runs the
whole discovery pipeline exactly once:

1. Prerequisites: driver present and driver library loadable
2. Bundles: newest pre-packaged release allowed by the pin or driver ceiling
3. Local installation as fallback
4. Optional libraries (cuDNN, cuTENSOR) and version-skew checks

The outcome (RESOLVED or FAILED) never changes afterwards.
"""

import os
import threading
import logging
from functools import partial
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..common.config import ResolverConfig
from ..common.constants import (
    CUDA_BUNDLE_RELEASES,
    CUDNN_BUNDLE_RELEASES,
    CUDNN_LIBRARY_MAJORS,
    CUTENSOR_BUNDLE_RELEASES,
    CUTENSOR_LIBRARY_MAJORS,
    MIN_CUDNN_VERSION,
    MIN_CUTENSOR_VERSION,
)
from ..common.errors import NotFunctionalError
from ..common.logging_utils import TimingSpan
from .artifact_store import ArtifactStore
from .bundle_provisioner import BundleProvisioner
from .compatibility_resolver import resolve_bundled
from .driver import DriverStatus, Prerequisite, RuntimeBinder
from .host_compiler import find_toolchain
from .loader import probe_library_version
from .platform import Platform
from .toolkit_locator import find_toolkit_library, locate_toolkit
from .types import (
    LibraryId,
    LibraryVersionInfo,
    Lookup,
    ResolutionState,
    ResolutionStatus,
    ResolvedToolkit,
    Toolchain,
    ToolkitSource,
    Version,
)

logger = logging.getLogger(__name__)

_OPTIONAL_BUNDLES = {
    LibraryId.CUDNN: CUDNN_BUNDLE_RELEASES,
    LibraryId.CUTENSOR: CUTENSOR_BUNDLE_RELEASES,
}

_OPTIONAL_MAJORS = {
    LibraryId.CUDNN: CUDNN_LIBRARY_MAJORS,
    LibraryId.CUTENSOR: CUTENSOR_LIBRARY_MAJORS,
}

_MIN_VERSIONS = {
    LibraryId.CUDNN: Version.parse(MIN_CUDNN_VERSION),
    LibraryId.CUTENSOR: Version.parse(MIN_CUTENSOR_VERSION),
}


def _as_library_id(library: Union[LibraryId, str]) -> LibraryId:
    if isinstance(library, LibraryId):
        return library
    return LibraryId(str(library).lower())


class ToolkitResolver:
    """
    Resolves the CUDA toolkit on first use and answers queries about it.

    All collaborators are injectable; omitted ones are built from the config
    and the running platform.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        driver: Optional[DriverStatus] = None,
        runtime: Optional[Prerequisite] = None,
        provisioner: Optional[BundleProvisioner] = None,
        locate: Optional[Callable[[], Lookup[ResolvedToolkit]]] = None,
        library_probe: Callable[[LibraryId, str], Optional[LibraryVersionInfo]] = probe_library_version,
        platform: Optional[Platform] = None,
        environ: Optional[Mapping[str, str]] = None,
        bundle_releases: Iterable[str] = CUDA_BUNDLE_RELEASES,
    ):
        self._environ = os.environ if environ is None else environ
        self._platform = platform or Platform.detect()
        self.config = config or ResolverConfig(environ=self._environ)

        self._driver = driver or DriverStatus()
        self._runtime = runtime or RuntimeBinder(self._platform, self._environ)
        self._provisioner = provisioner or BundleProvisioner(
            ArtifactStore(self.config.bundle_dir or None),
            platform=self._platform,
            timeout=self.config.probe_timeout,
        )
        self._locate = locate or partial(
            locate_toolkit,
            explicit_dirs=self.config.search_dirs,
            platform=self._platform,
            environ=self._environ,
            timeout=self.config.probe_timeout,
        )
        self._library_probe = library_probe
        self._bundle_releases = [Version.parse(r) for r in bundle_releases]

        self._lock = threading.Lock()
        self._state = ResolutionState()
        self._toolchain: Optional[Toolchain] = None

    # ---- Resolution ----

    def _ensure_state(self) -> ResolutionState:
        state = self._state
        if state.status is ResolutionStatus.UNRESOLVED:
            with self._lock:
                if self._state.status is ResolutionStatus.UNRESOLVED:
                    with TimingSpan("resolve_toolkit", log=logger):
                        self._state = self._resolve()
                    logger.debug(self._state.as_structured_log())
                state = self._state
        return state

    def _resolve(self) -> ResolutionState:
        for prerequisite in (self._driver, self._runtime):
            if not prerequisite.functional():
                reason = prerequisite.reason or f"{prerequisite.name} is not functional"
                return ResolutionState(ResolutionStatus.FAILED, reason=reason)

        warnings: List[str] = []
        toolkit = self._resolve_toolkit(warnings)
        if not toolkit:
            return ResolutionState(
                ResolutionStatus.FAILED, reason=toolkit.detail, warnings=tuple(warnings)
            )

        resolved = toolkit.value.with_libraries(self._resolve_optional(toolkit.value))
        warnings.extend(self._check_skew(resolved))

        logger.info(
            f"Using CUDA {resolved.version} from {resolved.source.value} installation at "
            f"{', '.join(resolved.install_prefixes)}"
        )
        return ResolutionState(ResolutionStatus.RESOLVED, toolkit=resolved, warnings=tuple(warnings))

    def _resolve_toolkit(self, warnings: List[str]) -> Lookup[ResolvedToolkit]:
        override = self.config.cuda_version

        if self.config.use_bundles:
            ceiling = self._driver.max_release()
            bundled = resolve_bundled(self._bundle_releases, self._provisioner.provision, override, ceiling)
            warnings.extend(bundled.warnings)
            if bundled:
                return bundled
            logger.debug(f"Falling back to a local installation: {bundled.detail}")

        local = self._locate()
        warnings.extend(local.warnings)
        if not local:
            if local.is_error:
                return Lookup.not_found(f"Could not use local CUDA toolkit: {local.detail}")
            return local

        if override is not None and local.value.release != override:
            message = f"Requested CUDA {override}, but the local installation provides CUDA {local.value.version}"
            logger.warning(message)
            warnings.append(message)
        return local

    def _resolve_optional(self, toolkit: ResolvedToolkit) -> Dict[LibraryId, Optional[str]]:
        """Find optional libraries with the strategy matching the toolkit's source."""
        paths: Dict[LibraryId, Optional[str]] = {}
        for library in LibraryId.optionals():
            if toolkit.source is ToolkitSource.BUNDLE:
                releases = {Version.parse(r) for r in _OPTIONAL_BUNDLES[library]}
                if toolkit.release not in releases:
                    logger.debug(f"No {library.value} bundle for CUDA {toolkit.release}")
                    paths[library] = None
                    continue
                result = self._provisioner.provision_optional(library, toolkit.release)
            else:
                result = find_toolkit_library(
                    library.value,
                    toolkit.install_prefixes,
                    versions=[Version.parse(m) for m in _OPTIONAL_MAJORS[library]],
                    platform=self._platform,
                    environ=self._environ,
                )

            paths[library] = result.value if result else None
            if result:
                logger.debug(f"Using {library.value} at {result.value}")
            else:
                logger.debug(f"{library.value} not available: {result.detail}")
        return paths

    def _check_skew(self, toolkit: ResolvedToolkit) -> List[str]:
        """Compare optional libraries against the toolkit release and minimum versions."""
        warnings = []
        for library in LibraryId.optionals():
            path = toolkit.library_paths.get(library)
            if path is None:
                continue
            info = self._library_probe(library, path)
            if info is None:
                continue

            if info.cuda_release.release != toolkit.release:
                warnings.append(
                    f"{library.value} {info.version} was built for CUDA {info.cuda_release.release}, "
                    f"but CUDA {toolkit.version} is in use"
                )
            minimum = _MIN_VERSIONS[library]
            if info.version < minimum:
                warnings.append(
                    f"{library.value} {info.version} is not supported; version {minimum} or newer is required"
                )

        for message in warnings:
            logger.warning(message)
        return warnings

    # ---- Queries ----

    @property
    def driver(self) -> DriverStatus:
        return self._driver

    def ensure_resolved(self, show_reason: bool = False) -> bool:
        """
        Resolve on first call and report whether a toolkit is usable.

        Args:
            show_reason: Log why resolution failed

        Returns:
            True when a toolkit was resolved
        """
        state = self._ensure_state()
        if not state.resolved and show_reason:
            logger.warning(f"cudadeps is not functional: {state.reason}")
        return state.resolved

    def functional(self, show_reason: bool = False) -> bool:
        return self.ensure_resolved(show_reason)

    @property
    def state(self) -> ResolutionState:
        return self._ensure_state()

    def _require(self) -> ResolvedToolkit:
        state = self._ensure_state()
        if not state.resolved:
            raise NotFunctionalError(state.reason or "cudadeps is not functional")
        return state.toolkit

    def toolkit(self) -> ResolvedToolkit:
        return self._require()

    def prefixes(self) -> Sequence[str]:
        return self._require().install_prefixes

    def version(self) -> Version:
        return self._require().version

    def release(self) -> Version:
        return self._require().release

    def library_path(self, library: Union[LibraryId, str]) -> Optional[str]:
        """Path of a bound library, or None when it is not available."""
        return self._require().library_paths.get(_as_library_id(library))

    def has_optional_library(self, library: Union[LibraryId, str]) -> bool:
        """
        Whether an optional library (cuDNN, cuTENSOR) was found.

        Raises:
            ValueError: The library is a core library (query it with library_path)
        """
        library = _as_library_id(library)
        if not library.optional:
            raise ValueError(f"{library.value} is not an optional library")
        return self.library_path(library) is not None

    def has_cudnn(self) -> bool:
        return self.has_optional_library(LibraryId.CUDNN)

    def has_cutensor(self) -> bool:
        return self.has_optional_library(LibraryId.CUTENSOR)

    def toolchain(self) -> Toolchain:
        """
        The nvcc plus host compiler pair for compiling against the toolkit.

        Raises:
            NotFunctionalError: Resolution failed
            ToolkitError: The toolkit does not ship nvcc
            HostCompilerError: No compatible host compiler exists
        """
        toolkit = self._require()
        with self._lock:
            if self._toolchain is None:
                self._toolchain = find_toolchain(
                    toolkit.install_prefixes,
                    toolkit.version,
                    platform=self._platform,
                    environ=self._environ,
                    timeout=self.config.probe_timeout,
                )
            return self._toolchain
