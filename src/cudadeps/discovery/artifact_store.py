"""
Artifact Store - Default Bundle Fetch Collaborator

Looks up pre-packaged toolkit bundles that were unpacked into a local
artifact directory (one subdirectory per artifact, e.g. artifacts/CUDA10.2).
Downloading and unpacking is handled elsewhere; a bundle that is not present
is reported as a ProvisionError so the resolver moves on to the next release.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..common.constants import INSTALL_RECORD_FILENAME
from ..common.errors import ProvisionError
from ..common.paths import get_artifacts_dir

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Local directory of unpacked bundles, keyed by artifact name."""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root is not None else get_artifacts_dir()

    def path(self, name: str) -> Path:
        return self.root / name

    def fetch(self, name: str) -> Path:
        """
        Return the directory of an installed artifact.

        Raises:
            ProvisionError: The artifact is not installed
        """
        artifact_dir = self.path(name)
        if not artifact_dir.is_dir():
            raise ProvisionError(f"Artifact {name} is not available in {self.root}")
        logger.debug(f"Using artifact {name} at {artifact_dir}")
        return artifact_dir

    def __call__(self, name: str) -> Path:
        return self.fetch(name)

    def read_install_record(self, name: str) -> Optional[Dict[str, Any]]:
        """Read the optional install.json written when the artifact was unpacked."""
        record_path = self.path(name) / INSTALL_RECORD_FILENAME
        if not record_path.exists():
            return None
        try:
            with open(record_path, "r") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.debug(f"Could not parse {record_path}: {e}")
            return None

    def installed(self) -> List[Dict[str, Any]]:
        """
        Scan the store for installed artifacts.

        Returns:
            List of dictionaries with keys: name, path, has_install_json, record
        """
        if not self.root.is_dir():
            return []

        artifacts = []
        for item in sorted(self.root.iterdir()):
            if not item.is_dir():
                continue
            record = self.read_install_record(item.name)
            artifacts.append(
                {
                    "name": item.name,
                    "path": item,
                    "has_install_json": (item / INSTALL_RECORD_FILENAME).exists(),
                    "record": record,
                }
            )
        return artifacts
