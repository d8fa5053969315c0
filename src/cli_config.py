"""Runtime configuration for the CLI.

Values are layered in increasing precedence: built-in defaults on
``Constants``, a YAML file, environment variables, then command-line flags.
A configuration file that cannot be used is reported and ignored; it never
stops the CLI.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

from constants import Constants
from common.logging_utils import add_file_handler, configure_logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILES = (".coreshift.yml", ".coreshift.yaml")


def find_config(working_dir: str) -> Optional[str]:
    """Return the first default config file present in ``working_dir``."""
    for name in DEFAULT_CONFIG_FILES:
        candidate = os.path.join(working_dir, name)
        if os.path.isfile(candidate):
            return candidate
    return None


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML configuration file.

    Returns:
        The parsed mapping, or an empty dict when the file is missing or unusable.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config %s: %s", config_path, e)
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error("Ignoring config %s: top level must be a mapping", config_path)
        return {}
    return data


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("Ignoring config section '%s': expected a mapping", name)
        return {}
    return value


def apply_config(cfg: Dict[str, Any]) -> None:
    """Copy recognised YAML settings onto ``Constants``."""
    composer = _section(cfg, "composer")
    if isinstance(composer.get("binary"), str) and composer["binary"].strip():
        Constants.COMPOSER_BINARY = composer["binary"].strip()
    if isinstance(composer.get("manifest"), str) and composer["manifest"].strip():
        Constants.MANIFEST_FILE = composer["manifest"].strip()

    packagist = _section(cfg, "packagist")
    if isinstance(packagist.get("url"), str) and packagist["url"].strip():
        Constants.REGISTRY_URL_PACKAGIST = packagist["url"].strip()
    timeout = packagist.get("timeout")
    if timeout is not None:
        try:
            Constants.REQUEST_TIMEOUT = int(timeout)
        except (TypeError, ValueError):
            logger.warning("Ignoring packagist.timeout=%r: not an integer", timeout)

    packages = _section(cfg, "packages")
    if isinstance(packages.get("primary"), str) and packages["primary"].strip():
        Constants.PRIMARY_PACKAGE = packages["primary"].strip()
    core = packages.get("core")
    if core is not None:
        if isinstance(core, list) and all(isinstance(name, str) for name in core):
            Constants.CORE_PACKAGES = list(core)
        else:
            logger.warning("Ignoring packages.core: expected a list of package names")


def apply_env_overrides(environ=None) -> None:
    """Apply environment variable overrides."""
    env = os.environ if environ is None else environ
    composer_bin = env.get(Constants.ENV_COMPOSER_BIN, "").strip()
    if composer_bin:
        Constants.COMPOSER_BINARY = composer_bin
    packagist_url = env.get(Constants.ENV_PACKAGIST_URL, "").strip()
    if packagist_url:
        Constants.REGISTRY_URL_PACKAGIST = packagist_url


def apply_cli_overrides(args) -> None:
    """Apply command-line overrides, which win over everything else."""
    if getattr(args, "COMPOSER_BIN", None):
        Constants.COMPOSER_BINARY = args.COMPOSER_BIN
    if getattr(args, "PACKAGIST_URL", None):
        Constants.REGISTRY_URL_PACKAGIST = args.PACKAGIST_URL


def configure(args, environ=None) -> None:
    """Resolve the effective configuration for one CLI invocation."""
    config_path = getattr(args, "CONFIG", None) or find_config(getattr(args, "WORKING_DIR", None) or ".")
    apply_config(load_config(config_path))
    apply_env_overrides(environ)
    apply_cli_overrides(args)


def setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    # --loglevel wins over $CORESHIFT_LOG_LEVEL, which configure_logging reads.
    level_name = getattr(args, "LOG_LEVEL", None)
    configure_logging(getattr(logging, str(level_name).upper(), logging.INFO) if level_name else None)

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        try:
            add_file_handler(log_file)
        except OSError as e:
            logger.error("Cannot write log file %s: %s", log_file, e)
            return
        logger.info("Logging to file: %s", log_file)
