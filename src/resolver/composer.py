"""Invocation of the external ``composer update`` resolver.

The resolver is a blocking, run-to-completion subprocess. Its exit status is
authoritative: this module reports it and never retries.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Dict, List, Optional

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, Timer

logger = logging.getLogger(__name__)

# Conventional shell status for "command not found".
EXIT_NOT_FOUND = 127


class ResolverFlag(Enum):
    """Named resolver options and their command-line spelling."""
    MINIMAL_CHANGES = "--minimal-changes"
    LOCK_ONLY = "--lock"
    NO_INTERACTION = "--no-interaction"


@dataclass(frozen=True)
class ResolverOutcome:
    """Exit status of one resolver run."""
    exit_code: int
    detail: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class ResolverInvoker(ABC):
    """Runs the dependency resolver against the on-disk manifest."""

    @abstractmethod
    def run(self, flags: AbstractSet[ResolverFlag]) -> ResolverOutcome:
        """Run the resolver with ``flags`` and block until it exits."""


class ComposerResolver(ResolverInvoker):
    """Runs ``composer update`` in the project directory."""

    def __init__(
        self,
        working_dir: str,
        binary: Optional[str] = None,
        manifest_file: Optional[str] = None,
    ):
        self.working_dir = working_dir
        self.binary = binary or Constants.COMPOSER_BINARY
        self.manifest_file = manifest_file or Constants.MANIFEST_FILE

    def build_command(self, flags: AbstractSet[ResolverFlag]) -> List[str]:
        """Command tokens, flags in declaration order for stable output."""
        ordered = [flag.value for flag in ResolverFlag if flag in flags]
        return shlex.split(self.binary) + ["update"] + ordered

    def build_env(self) -> Dict[str, str]:
        env = os.environ.copy()
        if os.path.basename(self.manifest_file) != Constants.MANIFEST_FILE:
            # Composer reads an alternative manifest name from $COMPOSER.
            env[Constants.ENV_COMPOSER_FILE] = self.manifest_file
        return env

    def run(self, flags: AbstractSet[ResolverFlag]) -> ResolverOutcome:
        cmd = self.build_command(flags)
        logger.info("Running: %s", " ".join(cmd))
        with Timer() as t:
            try:
                result = subprocess.run(  # noqa: S603
                    cmd,
                    cwd=self.working_dir,
                    env=self.build_env(),
                    check=False,
                )
            except OSError as e:
                logger.error("Could not start %s: %s", cmd[0], e)
                return ResolverOutcome(EXIT_NOT_FOUND, str(e))

        outcome = ResolverOutcome(result.returncode)
        if is_debug_enabled(logger):
            logger.debug(
                "Resolver finished",
                extra=extra_context(
                    event="subprocess_exit",
                    component="resolver",
                    action="update",
                    outcome="success" if outcome.success else "failure",
                    exit_code=outcome.exit_code,
                    duration_ms=t.duration_ms(),
                ),
            )
        if outcome.success:
            logger.info("Composer update completed successfully.")
        return outcome
