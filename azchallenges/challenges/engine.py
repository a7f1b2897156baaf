"""Challenge execution engine."""

import asyncio
import logging
from typing import Optional
from uuid import UUID

from ..inspector.base import ResourceInspector
from ..storage.cache import ProgressCache
from ..storage.progress import ProgressRecord
from .catalog import ChallengeCatalog
from .state import ChallengeState, Outcome
from .types import Challenge, ChallengeDefinition, Section
from .validators import run_validator

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong while checking this challenge, please try again."
ALREADY_COMPLETED = "You have already completed this challenge."
NOT_AVAILABLE = "This challenge is not available yet."


class ChallengeEngine:
    """Lists, checks and records challenges for users.

    The engine holds no per-user state of its own; everything a request
    needs is read from and written through the progress cache.
    """

    def __init__(
        self,
        catalog: ChallengeCatalog,
        cache: ProgressCache,
        inspector: ResourceInspector,
        check_timeout: Optional[float] = None,
    ):
        """Initialize the challenge engine.

        Args:
            catalog: Challenge definitions
            cache: Progress cache in front of the durable store
            inspector: Read-only access to live resources
            check_timeout: Seconds a single validation may take, None for no limit
        """
        self.catalog = catalog
        self.cache = cache
        self.inspector = inspector
        self.check_timeout = check_timeout

    async def get_progress(self, user_key: str) -> ProgressRecord:
        """Get a snapshot of a user's progress."""
        return await self.cache.get(user_key)

    async def list_challenges(self, section: Section, user_key: str) -> list[Challenge]:
        """Get the challenges of a section a user can currently see.

        Hidden challenges are left out entirely, the rest keep catalog order.

        Args:
            section: Section to list
            user_key: Sanitised user key

        Returns:
            Challenge views, each either visible or completed
        """
        progress = await self.cache.get(user_key)
        if not self._section_open(section, progress):
            return []

        return [
            Challenge(
                definition=definition,
                state=ChallengeState.COMPLETED if progress.is_completed(definition.id) else ChallengeState.VISIBLE,
            )
            for definition in self.catalog.definitions_for(section)
            if definition.can_show(progress)
        ]

    async def can_show_section(self, section: Section, user_key: str) -> bool:
        """Check if every section gating a section has been completed."""
        progress = await self.cache.get(user_key)
        return self._section_open(section, progress)

    async def challenge_state(self, challenge_id: UUID, user_key: str) -> ChallengeState:
        """Get where a challenge stands for a user.

        Unknown ids are reported as not visible.
        """
        definition = self.catalog.definition_by_id(challenge_id)
        if definition is None:
            return ChallengeState.NOT_VISIBLE
        progress = await self.cache.get(user_key)
        if progress.is_completed(challenge_id):
            return ChallengeState.COMPLETED
        if self._is_visible(definition, progress):
            return ChallengeState.VISIBLE
        return ChallengeState.NOT_VISIBLE

    async def check(self, challenge_id: UUID, user_key: str, value: str) -> Outcome:
        """Validate a submission and record the completion if it passes.

        Args:
            challenge_id: Challenge being answered
            user_key: Sanitised user key
            value: Text the user submitted

        Returns:
            Outcome of the check; validation failures never raise

        Raises:
            PersistenceError: If a passed challenge could not be recorded
        """
        definition = self.catalog.definition_by_id(challenge_id)
        if definition is None:
            logger.warning("Check requested for unknown challenge %s", challenge_id)
            return Outcome.failed(f"Unknown challenge '{challenge_id}'.")

        progress = await self.cache.get(user_key)
        if progress.is_completed(challenge_id):
            return Outcome.passed(ALREADY_COMPLETED)
        if not self._is_visible(definition, progress):
            logger.warning("%s tried to check hidden challenge %s", user_key, challenge_id)
            return Outcome.failed(NOT_AVAILABLE)

        try:
            outcome = await self._validate(definition, value, progress)
        except Exception:
            logger.exception("Checking challenge %s '%s' failed", challenge_id, definition.name)
            return Outcome.failed(GENERIC_ERROR)

        if outcome.completed and not outcome.is_recordable:
            logger.warning("Challenge %s passed without a success message, not recording it", challenge_id)
            return Outcome.pending()

        if outcome.is_recordable:
            recorded_value = value if definition.records is not None else None
            raced = False

            def record_completion(record: ProgressRecord) -> ProgressRecord:
                nonlocal raced
                # Another check of the same challenge may have finished while this one was validating.
                if record.is_completed(definition.id):
                    raced = True
                    return record
                return record.with_completion(definition.id, definition.records, recorded_value)

            await self.cache.update(user_key, record_completion)
            if raced:
                return Outcome.passed(ALREADY_COMPLETED)
            logger.info("%s completed challenge %s '%s'", user_key, challenge_id, definition.name)
        return outcome

    async def submit(self, view: Challenge, user_key: str, value: Optional[str] = None) -> Challenge:
        """Check a challenge view and move it to its next state.

        Args:
            view: View returned by list_challenges
            user_key: Sanitised user key
            value: Submission, defaults to the view's current input

        Returns:
            The same view, updated
        """
        submission = view.input if value is None else value
        if view.completed:
            outcome = await self.check(view.id, user_key, submission)
            view.success = outcome.success
            return view

        view.begin_check(submission)
        outcome = await self.check(view.id, user_key, submission)
        view.apply(outcome)
        return view

    async def reset_progress(self, user_key: str) -> None:
        """Replace a user's progress with an empty record, durably.

        Raises:
            PersistenceError: If the empty record could not be written
        """
        await self.cache.set(user_key, ProgressRecord())
        logger.info("Progress reset for %s", user_key)

    def invalidate_cache(self, user_key: str) -> None:
        """Drop the cached progress of a user so the next read hits the store."""
        self.cache.invalidate(user_key)

    async def _validate(self, definition: ChallengeDefinition, value: str, progress: ProgressRecord) -> Outcome:
        check = run_validator(definition.validator, value, progress, self.inspector)
        if self.check_timeout is None:
            return await check
        return await asyncio.wait_for(check, timeout=self.check_timeout)

    def _is_visible(self, definition: ChallengeDefinition, progress: ProgressRecord) -> bool:
        return self._section_open(definition.section, progress) and definition.can_show(progress)

    def _section_open(self, section: Section, progress: ProgressRecord, seen: Optional[set] = None) -> bool:
        seen = set() if seen is None else seen
        for required in self.catalog.prerequisites_for(section):
            if required in seen:
                continue
            seen.add(required)
            if not all(progress.is_completed(d.id) for d in self.catalog.definitions_for(required)):
                return False
            if not self._section_open(required, progress, seen):
                return False
        return True
