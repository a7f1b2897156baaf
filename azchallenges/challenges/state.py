"""Challenge lifecycle for one user.

States: not_visible → visible → checking → completed
                                       ↘ failed → visible

Completed is terminal until the user's progress is reset.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ChallengeState(str, Enum):
    """Where a challenge stands for one user."""

    NOT_VISIBLE = "not_visible"
    VISIBLE = "visible"
    CHECKING = "checking"
    COMPLETED = "completed"
    FAILED = "failed"


class ChallengeStateError(Exception):
    """Raised when an invalid challenge state transition is attempted."""


VALID_TRANSITIONS: dict[ChallengeState, list[ChallengeState]] = {
    ChallengeState.NOT_VISIBLE: [ChallengeState.VISIBLE],
    ChallengeState.VISIBLE: [ChallengeState.CHECKING],
    ChallengeState.CHECKING: [ChallengeState.COMPLETED, ChallengeState.FAILED],
    ChallengeState.FAILED: [ChallengeState.VISIBLE],
    ChallengeState.COMPLETED: [],  # terminal
}


def can_transition(current: ChallengeState, target: ChallengeState) -> bool:
    """Check if a challenge state transition is valid."""
    return target in VALID_TRANSITIONS.get(current, [])


def validate_transition(current: ChallengeState, target: ChallengeState) -> None:
    """Validate a transition, raising ChallengeStateError if invalid."""
    if not can_transition(current, target):
        allowed = [state.value for state in VALID_TRANSITIONS.get(current, [])]
        raise ChallengeStateError(
            f"Cannot move challenge from '{current.value}' to '{target.value}'. "
            f"Allowed from '{current.value}': {allowed}"
        )


class Outcome(BaseModel):
    """Result of validating one submission."""

    model_config = ConfigDict(frozen=True)

    completed: bool = False
    error: str = ""
    success: str = ""

    @classmethod
    def passed(cls, message: str) -> "Outcome":
        return cls(completed=True, success=message)

    @classmethod
    def failed(cls, message: str) -> "Outcome":
        return cls(completed=False, error=message)

    @classmethod
    def pending(cls) -> "Outcome":
        """No answer yet: neither completed nor in error."""
        return cls()

    @property
    def is_recordable(self) -> bool:
        """Completed with a success message, the condition for persisting it."""
        return self.completed and self.success.strip() != ""

    def next_state(self) -> ChallengeState:
        """State a checking challenge moves to after this outcome."""
        return ChallengeState.COMPLETED if self.is_recordable else ChallengeState.FAILED
