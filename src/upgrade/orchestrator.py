"""Drupal core upgrade workflow as an explicit state machine.

Each transition is a method taking the per-run ``RunContext`` and returning
the next ``RunState``; failures are raised as ``CoreshiftError`` and turned
into ``StepResult`` errors by ``advance``. ``run`` drives the machine to a
terminal state and restores the snapshot when a failure happens once the
files may have been touched.

Known limitation: writes are not atomic. If the process dies between a
write and the restore, the manifest and lock can be left half-updated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from constants import Constants, ExitCodes, Partition
from errors import CoreshiftError, ProjectNotRecognized, ResolverFailed
from common.logging_utils import extra_context, is_debug_enabled
from manifest.snapshot import Snapshot, SnapshotGuard
from manifest.store import ManifestStore
from resolver.composer import ResolverFlag, ResolverInvoker
from versioning.constraints import caret_range_from, is_wildcard
from versioning.models import RequestedChange, UpdateRequest
from versioning.policy import CatalogAccessor, build_request, is_update_needed, resolve_target

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str, str], bool]

# Requirements on the platform rather than on installable packages; the
# resolver never locks them, so they keep their declared constraint.
_PLATFORM_NAMES = {"php", "php-64bit", "php-ipv6", "php-zts", "php-debug", "hhvm",
                   "composer", "composer-plugin-api", "composer-runtime-api"}
_PLATFORM_PREFIXES = ("ext-", "lib-")


def is_platform_requirement(name: str) -> bool:
    lowered = name.lower()
    return lowered in _PLATFORM_NAMES or lowered.startswith(_PLATFORM_PREFIXES)


class RunState(Enum):
    """States of one upgrade run."""
    IDLE = "idle"
    VALIDATED = "validated"
    FILES_LOADED = "files_loaded"
    VERSIONS_RESOLVED = "versions_resolved"
    CONFIRMED = "confirmed"
    SNAPSHOTTED = "snapshotted"
    WILDCARDS_APPLIED = "wildcards_applied"
    RESOLVER_RAN_1 = "resolver_ran_1"
    CARETS_APPLIED = "carets_applied"
    RESOLVER_RAN_2 = "resolver_ran_2"
    COMMITTED = "committed"
    NO_OP_COMPLETED = "no_op_completed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


TERMINAL_STATES = frozenset({
    RunState.COMMITTED,
    RunState.NO_OP_COMPLETED,
    RunState.ROLLED_BACK,
    RunState.FAILED,
})

# A failure raised while leaving one of these states is rolled back.
GUARDED_STATES = frozenset({
    RunState.SNAPSHOTTED,
    RunState.WILDCARDS_APPLIED,
    RunState.RESOLVER_RAN_1,
    RunState.CARETS_APPLIED,
    RunState.RESOLVER_RAN_2,
})


@dataclass
class RunContext:
    """Everything one run knows; nothing is kept on the orchestrator."""
    change: RequestedChange
    state: RunState = RunState.IDLE
    request: Optional[UpdateRequest] = None
    current_version: Optional[str] = None
    target_version: Optional[str] = None
    snapshot: Optional[Snapshot] = None
    message: Optional[str] = None
    history: List[RunState] = field(default_factory=lambda: [RunState.IDLE])


@dataclass(frozen=True)
class StepResult:
    """Outcome of a single transition."""
    state: RunState
    error: Optional[CoreshiftError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RunReport:
    """Final outcome of a run, as handed back to the shell."""
    exit_code: int
    state: RunState
    current_version: Optional[str] = None
    target_version: Optional[str] = None
    error: Optional[CoreshiftError] = None
    message: Optional[str] = None
    history: Tuple[RunState, ...] = ()

    @property
    def success(self) -> bool:
        return self.exit_code == ExitCodes.SUCCESS.value


class UpgradeOrchestrator:
    """Sequences version resolution, manifest rewrites and resolver runs."""

    def __init__(
        self,
        store: ManifestStore,
        catalog: CatalogAccessor,
        resolver: ResolverInvoker,
        confirm: Optional[ConfirmCallback] = None,
        guard: Optional[SnapshotGuard] = None,
        primary_package: Optional[str] = None,
        core_packages: Optional[Sequence[str]] = None,
    ):
        self.store = store
        self.catalog = catalog
        self.resolver = resolver
        self.confirm = confirm
        self.guard = guard or SnapshotGuard(store.manifest_path, store.lock_path)
        self.primary_package = primary_package or Constants.PRIMARY_PACKAGE
        self.core_packages = list(core_packages or Constants.CORE_PACKAGES)
        if self.primary_package not in self.core_packages:
            self.core_packages.insert(0, self.primary_package)
        self._transitions: Dict[RunState, Callable[[RunContext], RunState]] = {
            RunState.IDLE: self.validate,
            RunState.VALIDATED: self.load_files,
            RunState.FILES_LOADED: self.resolve_versions,
            RunState.VERSIONS_RESOLVED: self.confirm_upgrade,
            RunState.CONFIRMED: self.take_snapshot,
            RunState.SNAPSHOTTED: self.apply_wildcards,
            RunState.WILDCARDS_APPLIED: self.run_minimal_update,
            RunState.RESOLVER_RAN_1: self.apply_carets,
            RunState.CARETS_APPLIED: self.refresh_lock,
            RunState.RESOLVER_RAN_2: self.commit,
        }

    # ---------- transitions ----------

    def validate(self, ctx: RunContext) -> RunState:
        ctx.request = build_request(ctx.change)
        return RunState.VALIDATED

    def load_files(self, ctx: RunContext) -> RunState:
        self.store.load()
        return RunState.FILES_LOADED

    def resolve_versions(self, ctx: RunContext) -> RunState:
        current = self.store.installed_version(self.primary_package)
        if current is None:
            raise ProjectNotRecognized(
                "Unable to determine the current Drupal core version. Ensure this is a valid Drupal project."
            )
        ctx.current_version = current
        ctx.target_version = resolve_target(current, ctx.request, self.catalog, self.primary_package)
        return RunState.VERSIONS_RESOLVED

    def confirm_upgrade(self, ctx: RunContext) -> RunState:
        current, target = ctx.current_version, ctx.target_version
        if not is_update_needed(current, target):
            ctx.message = f"Your Drupal core ({current}) is already the requested latest version."
            logger.info(ctx.message)
            return RunState.NO_OP_COMPLETED
        if ctx.request.assume_yes:
            return RunState.CONFIRMED
        if self.confirm is None or not self.confirm(current, target):
            ctx.message = "Operation cancelled by user."
            logger.info(ctx.message)
            return RunState.NO_OP_COMPLETED
        return RunState.CONFIRMED

    def take_snapshot(self, ctx: RunContext) -> RunState:
        ctx.snapshot = self.guard.capture()
        logger.info(
            "Updating Drupal core from version %s to version %s.", ctx.current_version, ctx.target_version
        )
        return RunState.SNAPSHOTTED

    def apply_wildcards(self, ctx: RunContext) -> RunState:
        deps = self.store.dependencies
        for package in self.core_packages:
            partition = deps.partition_of(package)
            if partition is None:
                if package != self.primary_package:
                    continue
                partition = Partition.PRIMARY
            deps.set_constraint(partition, package, ctx.target_version)
        for partition in Partition:
            for name, _ in deps.constraints_of(partition):
                # Platform requirements are never locked, so a wildcard would stick.
                if name in self.core_packages or is_platform_requirement(name):
                    continue
                deps.set_constraint(partition, name, Constants.WILDCARD)
        self.store.persist()
        return RunState.WILDCARDS_APPLIED

    def _run_resolver(self, flags) -> None:
        outcome = self.resolver.run(frozenset(flags))
        if not outcome.success:
            raise ResolverFailed(outcome.exit_code)

    def run_minimal_update(self, ctx: RunContext) -> RunState:
        self._run_resolver({ResolverFlag.MINIMAL_CHANGES, ResolverFlag.NO_INTERACTION})
        return RunState.RESOLVER_RAN_1

    def apply_carets(self, ctx: RunContext) -> RunState:
        deps, _ = self.store.load()
        locked = self.store.locked_versions()
        for partition in Partition:
            for name, constraint in deps.constraints_of(partition):
                if not is_wildcard(constraint):
                    continue
                exact = locked.get(name)
                if exact is None:
                    logger.warning("No locked version for %s; leaving its constraint as \"%s\".", name, constraint)
                    continue
                deps.set_constraint(partition, name, caret_range_from(exact))
        self.store.persist()
        return RunState.CARETS_APPLIED

    def refresh_lock(self, ctx: RunContext) -> RunState:
        self._run_resolver({ResolverFlag.LOCK_ONLY, ResolverFlag.NO_INTERACTION})
        return RunState.RESOLVER_RAN_2

    def commit(self, ctx: RunContext) -> RunState:
        ctx.message = (
            f"Drupal core has been successfully updated from version {ctx.current_version} "
            f"to version {ctx.target_version}."
        )
        logger.info(ctx.message)
        return RunState.COMMITTED

    # ---------- driver ----------

    def new_context(self, change: RequestedChange) -> RunContext:
        return RunContext(change=change)

    def advance(self, ctx: RunContext) -> StepResult:
        """Apply the transition leaving ``ctx.state``."""
        handler = self._transitions.get(ctx.state)
        if handler is None:
            raise ValueError(f"No transition leaves terminal state {ctx.state.value}")
        try:
            next_state = handler(ctx)
        except CoreshiftError as e:
            return StepResult(ctx.state, e)
        except Exception as e:  # pylint: disable=broad-exception-caught
            if ctx.state not in GUARDED_STATES:
                raise
            error = CoreshiftError(f"Unexpected error: {e}")
            error.__cause__ = e
            return StepResult(ctx.state, error)

        if is_debug_enabled(logger):
            logger.debug(
                "State transition",
                extra=extra_context(
                    event="transition",
                    component="orchestrator",
                    action=handler.__name__,
                    state=next_state.value,
                ),
            )
        ctx.state = next_state
        ctx.history.append(next_state)
        return StepResult(next_state)

    def run(self, change: RequestedChange) -> RunReport:
        """Drive one upgrade run to a terminal state."""
        ctx = self.new_context(change)
        while ctx.state not in TERMINAL_STATES:
            try:
                result = self.advance(ctx)
            except BaseException:
                # Interrupted mid-run: put the files back before propagating.
                if ctx.state in GUARDED_STATES and ctx.snapshot is not None:
                    self.guard.restore(ctx.snapshot)
                raise
            if not result.ok:
                return self._fail(ctx, result.error)
        return self._report(ctx, ExitCodes.SUCCESS.value)

    def _fail(self, ctx: RunContext, error: CoreshiftError) -> RunReport:
        if isinstance(error, ProjectNotRecognized):
            logger.warning("%s", error)
            ctx.message = str(error)
            self._finish(ctx, RunState.NO_OP_COMPLETED)
            return self._report(ctx, ExitCodes.SUCCESS.value)

        logger.error("Upgrade failed: %s", error)
        if ctx.state in GUARDED_STATES and ctx.snapshot is not None:
            if self.guard.restore(ctx.snapshot):
                logger.info("To restore the vendor folder to its previous state, please run 'composer install'.")
            else:
                logger.error("Rollback was incomplete; check %s and %s by hand.",
                             self.store.manifest_path, self.store.lock_path)
            self._finish(ctx, RunState.ROLLED_BACK)
        else:
            self._finish(ctx, RunState.FAILED)
        ctx.message = str(error)
        return self._report(ctx, ExitCodes.FAILURE.value, error)

    @staticmethod
    def _finish(ctx: RunContext, state: RunState) -> None:
        ctx.state = state
        ctx.history.append(state)

    @staticmethod
    def _report(ctx: RunContext, exit_code: int, error: Optional[CoreshiftError] = None) -> RunReport:
        return RunReport(
            exit_code=exit_code,
            state=ctx.state,
            current_version=ctx.current_version,
            target_version=ctx.target_version,
            error=error,
            message=ctx.message,
            history=tuple(ctx.history),
        )
