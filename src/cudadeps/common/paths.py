import os
import sys
import logging
from pathlib import Path
from typing import Mapping, Optional

from .constants import APP_FOLDER_NAME, ARTIFACTS_FOLDER_NAME

logger = logging.getLogger(__name__)


def get_data_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Get platform-appropriate data directory for cudadeps.

    Holds the config file and the artifact store. The directory is not
    created here; callers that write create it on demand.

    Platform paths:
        Windows: %LOCALAPPDATA%/CudaDeps/
        Linux:   ~/.local/share/CudaDeps/ (respects XDG_DATA_HOME)
        macOS:   ~/Library/Application Support/CudaDeps/
    """
    environ = os.environ if environ is None else environ

    # Windows: Use LOCALAPPDATA
    if sys.platform == "win32":
        local_app_data = environ.get("LOCALAPPDATA")
        if local_app_data:
            return Path(local_app_data) / APP_FOLDER_NAME
        logger.warning("LOCALAPPDATA not found, using home directory")
        return Path.home() / "AppData" / "Local" / APP_FOLDER_NAME

    # macOS: Use Application Support
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_FOLDER_NAME

    # Linux: Respect XDG_DATA_HOME
    xdg_data = environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data) / APP_FOLDER_NAME
    return Path.home() / ".local" / "share" / APP_FOLDER_NAME


def get_artifacts_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Default root of the artifact store."""
    return get_data_dir(environ) / ARTIFACTS_FOLDER_NAME
