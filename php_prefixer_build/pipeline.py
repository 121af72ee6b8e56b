"""
Prefixing pipeline: an explicit state machine over one invocation.

    RESOLVED -> SYNCHRONIZED -> SKIPPED
                             -> PREPARED -> PUBLISHED | NO_CHANGE
    any stage -> FAILED, any stage -> CLEANED

Each operation checks the transition table before touching a repository;
out-of-order calls raise `InvalidTransitionError`. The invocation state is an
immutable `InvocationContext` replaced on every transition.
"""

import logging
import shutil
from contextlib import contextmanager
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Generator, Optional

from .commands import ComposerHelper, DependencyInstaller, PhpPrefixerCommand, Transformer
from .config import Config, PrefixerSettings, SourceSettings
from .errors import InvalidTransitionError
from .gate import waiting_job
from .git_sync import PerformanceLogger, RepositorySettings, VersionControl, create_git_helper
from .manifest import apply_schema_override, require_manifest
from .platform import ensure_writable_directory, make_temp_path
from .publisher import Publisher
from .references import ResolvedReferences, resolve_references
from .synchronizer import RepositorySynchronizer, TargetContext


class Stage(Enum):
    """Stages of one prefixing invocation."""
    RESOLVED = "resolved"          # References resolved, target dir empty
    SYNCHRONIZED = "synchronized"  # Prefixed branch checked out in the target clone
    PREPARED = "prepared"          # Prefixed output written to the target clone
    PUBLISHED = "published"
    NO_CHANGE = "no_change"
    SKIPPED = "skipped"            # Already prefixed
    FAILED = "failed"
    CLEANED = "cleaned"


_AFTER_PUBLICATION = frozenset({Stage.PUBLISHED, Stage.NO_CHANGE, Stage.PREPARED, Stage.FAILED, Stage.CLEANED})

TRANSITIONS: Dict[Stage, FrozenSet[Stage]] = {
    Stage.RESOLVED: frozenset({Stage.SYNCHRONIZED, Stage.FAILED, Stage.CLEANED}),
    Stage.SYNCHRONIZED: frozenset({Stage.PREPARED, Stage.SKIPPED, Stage.FAILED, Stage.CLEANED}),
    Stage.PREPARED: frozenset({Stage.PUBLISHED, Stage.NO_CHANGE, Stage.FAILED, Stage.CLEANED}),
    # A re-run against the same target clone starts over from PREPARED
    Stage.PUBLISHED: _AFTER_PUBLICATION,
    Stage.NO_CHANGE: _AFTER_PUBLICATION,
    Stage.SKIPPED: frozenset({Stage.CLEANED}),
    Stage.FAILED: frozenset({Stage.CLEANED}),
    Stage.CLEANED: frozenset({Stage.CLEANED}),
}


def can_transition(current: Stage, new: Stage) -> bool:
    return new in TRANSITIONS[current]


@dataclass(frozen=True)
class InvocationContext:
    """Everything one invocation knows, replaced on every transition."""
    source: SourceSettings
    prefixer: PrefixerSettings
    references: ResolvedReferences
    target: TargetContext
    stage: Stage = Stage.RESOLVED
    branch_created: bool = False

    @property
    def source_dir(self) -> Path:
        return Path(self.source.repository_path)

    @property
    def target_dir(self) -> Path:
        return self.target.path


class PrefixBuild:
    """
    Orchestrates reference resolution, synchronization, the idempotency gate,
    the transformation and the publication for one source checkout.

    Use `create()`; it fails fast on a missing manifest or an unwritable
    target directory before any synchronization work.
    """

    def __init__(
        self,
        context: InvocationContext,
        source_git: VersionControl,
        config: Config,
        installer: DependencyInstaller,
        transformer: Transformer
    ):
        self._context = context
        self.source_git = source_git
        self.config = config
        self.installer = installer
        self.transformer = transformer
        self.logger = logging.getLogger('php_prefixer_build.pipeline')
        self.perf_logger = PerformanceLogger()

        self.synchronizer = RepositorySynchronizer(
            source_dir=context.source_dir,
            source_git=source_git,
            target=context.target,
            config=config,
            installer=installer,
            fetch_depth=context.source.fetch_depth or None
        )

    @classmethod
    def create(
        cls,
        source: SourceSettings,
        prefixer: PrefixerSettings,
        config: Optional[Config] = None,
        source_git: Optional[VersionControl] = None,
        target_path: Optional[Path] = None,
        target_git: Optional[VersionControl] = None,
        installer: Optional[DependencyInstaller] = None,
        transformer: Optional[Transformer] = None
    ) -> "PrefixBuild":
        """
        Resolve the references of a source checkout and bind a target clone.

        Args:
            source: Source repository settings; `repository_path` must be a checkout
            prefixer: PHP-Prefixer credentials
            config: Build configuration
            source_git: Facade for the source checkout
            target_path: Existing writable directory for the target clone;
                a fresh temporary directory is created when omitted
            target_git: Facade for the target clone
            installer: Dependency manager used on both working directories
            transformer: Transformation binary wrapper

        Raises:
            MissingPrerequisiteError: when the manifest is missing or the target is unwritable
            TopologyError: when the requested tag is not contained in any branch
        """
        config = config or Config()
        source_dir = Path(source.repository_path)

        require_manifest(source_dir)

        created_target = target_path is None
        if target_path is None:
            target_path = make_temp_path(config.work_dir)
        target_path = Path(target_path)
        ensure_writable_directory(target_path)

        if source_git is None:
            source_git = create_git_helper(RepositorySettings(source_dir))
        if target_git is None:
            target_git = create_git_helper(RepositorySettings(target_path))

        try:
            references = resolve_references(source_git, source.ref)
        except Exception:
            if created_target:
                shutil.rmtree(target_path, ignore_errors=True)
            raise

        context = InvocationContext(
            source=source,
            prefixer=prefixer,
            references=references,
            target=TargetContext(
                path=target_path,
                git=target_git,
                backref_remote=config.backref_remote
            ),
        )

        return cls(
            context,
            source_git,
            config,
            installer or ComposerHelper(config.composer_path),
            transformer or PhpPrefixerCommand(prefixer.cli_path)
        )

    @property
    def context(self) -> InvocationContext:
        return self._context

    @property
    def stage(self) -> Stage:
        return self._context.stage

    @property
    def references(self) -> ResolvedReferences:
        return self._context.references

    def _advance(self, stage: Stage, **changes) -> None:
        current = self._context.stage
        if not can_transition(current, stage):
            raise InvalidTransitionError(f"Cannot move from {current.value} to {stage.value}")

        self.logger.debug(f"Stage {current.value} -> {stage.value}")
        self._context = replace(self._context, stage=stage, **changes)

    def _require(self, *stages: Stage) -> None:
        if self.stage not in stages:
            allowed = ", ".join(s.value for s in stages)
            raise InvalidTransitionError(f"Operation not allowed in stage {self.stage.value} (expected {allowed})")

    @contextmanager
    def _failing_to(self, operation: str) -> Generator[None, None, None]:
        """Time an operation and move to FAILED when it raises."""
        try:
            with self.perf_logger.time_operation(operation):
                yield
        except InvalidTransitionError:
            raise
        except Exception:
            if can_transition(self.stage, Stage.FAILED):
                self._advance(Stage.FAILED)
            raise

    def synchronize(self) -> bool:
        """
        Check out the prefixed branch in the target clone.

        Returns:
            True if the prefixed branch had to be created
        """
        self._require(Stage.RESOLVED)

        with self._failing_to("synchronize"):
            branch_created = self.synchronizer.checkout_target(self.references)

        self._advance(Stage.SYNCHRONIZED, branch_created=branch_created)
        return branch_created

    def waiting_job(self) -> bool:
        """
        Decide whether a publication is owed, synchronizing first when needed.

        A negative answer right after synchronization ends the invocation as
        SKIPPED. After a publication the gate can be asked again without a
        stage change.
        """
        if self.stage == Stage.RESOLVED:
            self.synchronize()

        self._require(Stage.SYNCHRONIZED, Stage.PUBLISHED, Stage.NO_CHANGE)

        with self._failing_to("waiting_job"):
            owed = waiting_job(
                self.references,
                self._context.branch_created,
                self.source_git,
                self._context.target.git
            )

        if not owed and self.stage == Stage.SYNCHRONIZED:
            self._advance(Stage.SKIPPED)

        return owed

    def prefix(self, prepare_repositories: bool = True) -> bool:
        """
        Transform the source into the target clone and publish the result.

        Args:
            prepare_repositories: Install source dependencies, re-mirror the
                source and strip regenerated files before transforming

        Returns:
            True if a new prefixed build was pushed, False when nothing changed
        """
        if self.stage == Stage.RESOLVED:
            self.synchronize()

        self._require(Stage.SYNCHRONIZED, Stage.PUBLISHED, Stage.NO_CHANGE)

        source_dir = self._context.source_dir
        target_dir = self._context.target_dir
        prefixer = self._context.prefixer

        if prepare_repositories:
            with self._failing_to("prepare_repositories"):
                stripped = self.synchronizer.refresh_target()
            self.logger.debug(f"Stripped {len(stripped)} path(s) before prefixing")

        with self._failing_to("prefix"):
            apply_schema_override(source_dir, prefixer.schema)
            self.transformer.prefix(source_dir, target_dir, prefixer)

        with self._failing_to("install_target"):
            self.installer.install_and_optimize(target_dir)

        self._advance(Stage.PREPARED)

        publisher = Publisher(self._context.target, self.references, self.config.ignored_status_paths)
        with self._failing_to("publish"):
            published = publisher.publish()

        if published:
            # The prefixed branch now exists on the back-reference remote
            self._advance(Stage.PUBLISHED, branch_created=False)
        else:
            self._advance(Stage.NO_CHANGE)

        return published

    def run(self) -> Stage:
        """
        Run one invocation up to a terminal stage.

        Returns:
            SKIPPED, PUBLISHED or NO_CHANGE; failures propagate
        """
        if not self.waiting_job():
            self.logger.info("The project is already prefixed.")
            return self.stage

        self.logger.info("Prefixing ...")
        self.prefix()
        self.logger.info("Project prefixed." if self.stage == Stage.PUBLISHED else "No changes to publish.")

        self.perf_logger.log_summary()
        return self.stage

    def cleanup(self) -> None:
        """Delete the target working directory. Safe to call more than once."""
        target_dir = self._context.target_dir

        if target_dir.exists():
            self.logger.debug(f"Removing {target_dir}")
            shutil.rmtree(target_dir)

        if self.stage != Stage.CLEANED:
            self._advance(Stage.CLEANED)
