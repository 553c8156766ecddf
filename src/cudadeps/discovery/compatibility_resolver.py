"""
Version Compatibility Resolver

Picks the newest bundled toolkit release that is allowed by an explicit pin
or by the driver's ceiling, trying candidates newest-first until one
provisions.
"""

import logging
from typing import Callable, Iterable, List, Optional

from .types import Lookup, ResolvedToolkit, Version

logger = logging.getLogger(__name__)


def select_candidates(
    candidates: Iterable[Version],
    override: Optional[Version] = None,
    ceiling: Optional[Version] = None,
) -> List[Version]:
    """
    Filter and order candidate releases.

    An override restricts to exactly that release, regardless of the ceiling.
    Otherwise a ceiling keeps releases not newer than it. Comparison is on
    major.minor only.
    """
    releases = {v.release for v in candidates}
    if override is not None:
        releases = {v for v in releases if v == override.release}
    elif ceiling is not None:
        releases = {v for v in releases if v <= ceiling.release}
    return sorted(releases, reverse=True)


def resolve_bundled(
    candidates: Iterable[Version],
    provision: Callable[[Version], Lookup[ResolvedToolkit]],
    override: Optional[Version] = None,
    ceiling: Optional[Version] = None,
) -> Lookup[ResolvedToolkit]:
    """
    Provision the newest compatible bundled release.

    Args:
        candidates: Releases for which bundles exist
        provision: Called per release, newest first; first FOUND result wins
        override: Explicit user pin
        ceiling: Highest release the driver supports

    Returns:
        The first successful provision, or NOT_FOUND when the filtered set is
        empty or every attempt failed
    """
    logger.debug("Trying to use artifacts...")
    ordered = select_candidates(candidates, override, ceiling)
    if not ordered:
        return Lookup.not_found(
            f"No bundled CUDA release matches (override={override}, ceiling={ceiling})"
        )

    failures = []
    for release in ordered:
        result = provision(release)
        if result:
            return result
        logger.debug(f"Could not provision CUDA {release}: {result.detail}")
        failures.append(f"{release}: {result.detail}")

    return Lookup.not_found("Could not find a compatible artifact. " + "; ".join(failures))
