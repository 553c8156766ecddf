import os
import configparser
import logging
from typing import List, Mapping, Optional

from .constants import (
    CONFIG_FILENAME,
    DEFAULT_PROBE_TIMEOUT,
    ENV_BUNDLE_DIR,
    ENV_CONFIG,
    ENV_CUDA_VERSION,
    ENV_LOG_LEVEL,
    ENV_USE_BUNDLES,
)
from .paths import get_data_dir

logger = logging.getLogger(__name__)

_BOOLEAN_STATES = configparser.ConfigParser.BOOLEAN_STATES


class ResolverConfig:
    def __init__(self, config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        """Initialize ResolverConfig from file and environment.

        Args:
            config_path: Optional path to an INI file. If None, CUDADEPS_CONFIG
                         or the platform data directory is used.
            environ: Environment mapping (os.environ if omitted). Environment
                     variables override values from the file.
        """
        self._environ = os.environ if environ is None else environ

        if config_path:
            self.config_path = os.fspath(config_path)
            logger.debug(f"Using custom config: {self.config_path}")
        elif self._environ.get(ENV_CONFIG):
            self.config_path = self._environ[ENV_CONFIG]
            logger.debug(f"Using config from {ENV_CONFIG}: {self.config_path}")
        else:
            self.config_path = os.path.join(get_data_dir(self._environ), CONFIG_FILENAME)

        self._config = configparser.ConfigParser()
        if os.path.exists(self.config_path):
            logger.debug(f"Loading existing config from: {self.config_path}")
            self._config.read(self.config_path, encoding="utf-8-sig")
        else:
            # Resolution must not write to disk; defaults stay in memory
            logger.debug(f"Config file not found at {self.config_path}, using defaults")
            self._set_defaults()

        self._initialize_properties()

    def _get_defaults(self):
        """Get default configuration values as a dictionary structure."""
        return {
            "Toolkit": {
                "version": "",
                "use_bundles": True,
                "bundle_dir": "",
                "search_dirs": "",
                "probe_timeout": DEFAULT_PROBE_TIMEOUT,
            },
            "General": {
                "log_level": "INFO",
            },
        }

    def _set_defaults(self):
        """Set default configuration values in the ConfigParser object."""
        defaults = self._get_defaults()

        for section, values in defaults.items():
            self._config[section] = {}
            for key, value in values.items():
                # Convert all values to strings for ConfigParser
                if isinstance(value, bool):
                    self._config[section][key] = "true" if value else "false"
                else:
                    self._config[section][key] = str(value)

    def _initialize_properties(self):
        """Initialize class properties from config values with fallbacks."""
        defaults = self._get_defaults()

        self._init_toolkit(defaults)
        self._init_general(defaults)
        self._apply_environment()

        logger.debug("Configuration loaded: %s", self.config_path)

    def _init_toolkit(self, defaults: dict):
        """Initialize Toolkit section properties."""
        t = defaults["Toolkit"]
        self.version_str = self._config.get("Toolkit", "version", fallback=t["version"])
        self.use_bundles = self._get_typed(self._config.getboolean, "Toolkit", "use_bundles", t["use_bundles"])
        self.bundle_dir = self._config.get("Toolkit", "bundle_dir", fallback=t["bundle_dir"])
        search_dirs_str = self._config.get("Toolkit", "search_dirs", fallback=t["search_dirs"])
        self.search_dirs = self._split_list(search_dirs_str)
        self.probe_timeout = self._get_typed(self._config.getfloat, "Toolkit", "probe_timeout", t["probe_timeout"])

    def _get_typed(self, getter, section: str, key: str, default):
        """Read a typed value; malformed values are logged and replaced by the default."""
        try:
            return getter(section, key, fallback=default)
        except ValueError as e:
            logger.warning(f"Ignoring invalid value for [{section}] {key} in {self.config_path}: {e}")
            return default

    def _init_general(self, defaults: dict):
        """Initialize General section properties."""
        g = defaults["General"]
        self.log_level_str = self._config.get("General", "log_level", fallback=g["log_level"])
        self.log_level = self._get_log_level(self.log_level_str)

    def _apply_environment(self):
        """Environment variables take precedence over the config file."""
        env = self._environ
        if env.get(ENV_CUDA_VERSION):
            self.version_str = env[ENV_CUDA_VERSION]
            logger.debug(f"CUDA version pinned by {ENV_CUDA_VERSION}={self.version_str}")
        if env.get(ENV_USE_BUNDLES):
            value = env[ENV_USE_BUNDLES].strip().lower()
            if value in _BOOLEAN_STATES:
                self.use_bundles = _BOOLEAN_STATES[value]
            else:
                logger.warning(f"Ignoring invalid {ENV_USE_BUNDLES} value: {env[ENV_USE_BUNDLES]!r}")
        if env.get(ENV_BUNDLE_DIR):
            self.bundle_dir = env[ENV_BUNDLE_DIR]
        if env.get(ENV_LOG_LEVEL):
            self.log_level_str = env[ENV_LOG_LEVEL]
            self.log_level = self._get_log_level(self.log_level_str)

    @staticmethod
    def _split_list(value: str) -> List[str]:
        return [item.strip() for item in value.split(",") if item.strip()]

    def _get_log_level(self, level_str):
        """Convert string log level to logging level constant"""
        levels = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return levels.get(level_str.upper(), logging.INFO)  # Default to INFO if invalid

    @property
    def cuda_version(self):
        """
        Pinned CUDA release, or None when not pinned.

        Invalid pins are logged and ignored.
        """
        # Imported here; the discovery package imports this module
        from ..discovery.types import Version

        if not self.version_str.strip():
            return None
        try:
            return Version.parse(self.version_str).release
        except ValueError:
            logger.warning(f"Ignoring invalid CUDA version pin: {self.version_str!r}")
            return None

    def _update_toolkit_section(self, config: configparser.ConfigParser):
        """Update Toolkit section in config."""
        if not config.has_section("Toolkit"):
            config.add_section("Toolkit")

        config["Toolkit"]["version"] = self.version_str
        config["Toolkit"]["use_bundles"] = "true" if self.use_bundles else "false"
        config["Toolkit"]["bundle_dir"] = self.bundle_dir or ""
        config["Toolkit"]["search_dirs"] = ",".join(self.search_dirs)
        config["Toolkit"]["probe_timeout"] = str(self.probe_timeout)

    def _update_general_section(self, config: configparser.ConfigParser):
        """Update General section in config."""
        if not config.has_section("General"):
            config.add_section("General")

        config["General"]["log_level"] = self.log_level_str

    def save(self):
        """Save current configuration to file.

        Re-reads the existing config file, updates only managed keys and
        preserves all unrelated sections/keys.
        """
        current = configparser.ConfigParser()
        if os.path.exists(self.config_path):
            current.read(self.config_path, encoding="utf-8-sig")
            logger.debug(f"Re-read existing config from {self.config_path}")

        self._update_toolkit_section(current)
        self._update_general_section(current)

        directory = os.path.dirname(self.config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            with open(self.config_path, "w", encoding="utf-8") as configfile:
                current.write(configfile)
            logger.debug(f"Configuration saved to {self.config_path}")
        except OSError as e:
            logger.error(f"Failed to save config: {e}")
            raise

    def save_config(self):
        """Alias for save()"""
        self.save()
