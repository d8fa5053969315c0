"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FAILURE = 1


class Partition(Enum):
    """Dependency partitions of a Composer manifest.

    Args:
        Enum (string): Manifest key holding the partition's constraints.
    """

    PRIMARY = "require"
    AUXILIARY = "require-dev"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    PRIMARY_PACKAGE = "drupal/core-recommended"
    CORE_PACKAGES = [
        "drupal/core-recommended",
        "drupal/core-composer-scaffold",
        "drupal/core-dev",
    ]
    WILDCARD = "*"

    COMPOSER_BINARY = "composer"
    MANIFEST_FILE = "composer.json"
    DEFAULT_VENDOR_DIR = "vendor"
    INSTALLED_FILE = "composer/installed.json"
    ENV_COMPOSER_FILE = "COMPOSER"

    REGISTRY_URL_PACKAGIST = "https://repo.packagist.org/p2/"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_CACHE_TTL_SEC = 300

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    ENV_LOG_LEVEL = "CORESHIFT_LOG_LEVEL"
    ENV_COMPOSER_BIN = "CORESHIFT_COMPOSER_BIN"
    ENV_PACKAGIST_URL = "CORESHIFT_PACKAGIST_URL"
