"""coreshift - Change the Drupal core version of a Composer project.

Moves a project to an exact version, the latest minor release of its current
major, the newest major or the next major, rewriting composer.json and
composer.lock through ``composer update`` and restoring both files if any
step fails.

    Returns:
        int: Exit code
"""
import logging
import os
import sys

from constants import Constants, ExitCodes
from common.logging_utils import extra_context, is_debug_enabled
from args import parse_args, requested_change
from cli_config import configure, setup_logging
from manifest.store import ManifestStore
from registry.packagist import PackagistCatalog
from resolver.composer import ComposerResolver
from upgrade.orchestrator import UpgradeOrchestrator

logger = logging.getLogger(__name__)

CONFIRM_ANSWERS = ("y", "yes")


def prompt_confirmation(current: str, target: str) -> bool:
    """Ask on the terminal whether to go ahead with the upgrade."""
    print(f'Your current Drupal Core version is "{current}" and the requested next version to upgrade is "{target}".')
    try:
        answer = input("Do you want to proceed with the upgrade? (yes/no) ")
    except EOFError:
        return False
    return answer.strip().lower() in CONFIRM_ANSWERS


def build_orchestrator(working_dir: str, confirm=prompt_confirmation) -> UpgradeOrchestrator:
    """Wire the production collaborators for ``working_dir``."""
    store = ManifestStore.for_directory(working_dir, Constants.MANIFEST_FILE)
    return UpgradeOrchestrator(
        store=store,
        catalog=PackagistCatalog(Constants.REGISTRY_URL_PACKAGIST),
        resolver=ComposerResolver(
            working_dir,
            binary=Constants.COMPOSER_BINARY,
            manifest_file=Constants.MANIFEST_FILE,
        ),
        confirm=confirm,
        primary_package=Constants.PRIMARY_PACKAGE,
        core_packages=Constants.CORE_PACKAGES,
    )


def run(argv=None) -> int:
    """Run the CLI and return its exit code."""
    args = parse_args(argv)
    setup_logging(args)
    configure(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main"),
        )

    working_dir = os.path.abspath(args.WORKING_DIR)
    if not os.path.isdir(working_dir):
        logger.error("Working directory does not exist: %s", working_dir)
        return ExitCodes.FAILURE.value

    report = build_orchestrator(working_dir).run(requested_change(args))

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(
                event="function_exit",
                component="cli",
                action="main",
                outcome=report.state.value,
                exit_code=report.exit_code,
            ),
        )
    return report.exit_code


def main():
    """Main function of the program."""
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        sys.exit(ExitCodes.FAILURE.value)


if __name__ == "__main__":
    main()
