"""Challenge type definitions."""

from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..storage.progress import ProgressField, ProgressRecord
from .state import ChallengeState, Outcome, validate_transition
from .validators import Validator


class Section(str, Enum):
    """Groups of challenges, one per resource family."""

    RESOURCE_GROUP = "ResourceGroup"
    STORAGE_ACCOUNT = "StorageAccount"
    KEY_VAULT = "KeyVault"
    SQL_SERVER = "SqlServer"
    APP_SERVICE = "AppService"
    NETWORK_SEGMENT = "NetworkSegment"
    PRIVATE_ENDPOINT = "PrivateEndpoint"
    BONUS = "Bonus"


class ChallengeKind(str, Enum):
    """How a challenge is answered."""

    REQUIRES_TEXT_INPUT = "requires_text_input"
    REQUIRES_CONFIGURATION_CHECK = "requires_configuration_check"
    QUIZ = "quiz"


class ChallengeDefinition(BaseModel):
    """A challenge in the catalog."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    section: Section
    kind: ChallengeKind
    name: str
    description: str = Field(default="")
    statement: str = Field(default="", description="What the user needs to do")
    hint: Optional[str] = Field(default=None)
    link: Optional[str] = Field(default=None, description="Download or reference link")
    quiz_options: tuple[str, ...] = Field(default=(), description="Allowed answers for quizzes")
    validator: Validator
    requires: tuple[ProgressField, ...] = Field(
        default=(), description="Progress fields that must be set before it is shown"
    )
    records: Optional[ProgressField] = Field(
        default=None, description="Progress field the submitted input is stored in"
    )

    @model_validator(mode="after")
    def _quiz_options_match_kind(self) -> "ChallengeDefinition":
        if self.kind == ChallengeKind.QUIZ and not self.quiz_options:
            raise ValueError(f"Quiz challenge {self.id} has no options")
        if self.kind != ChallengeKind.QUIZ and self.quiz_options:
            raise ValueError(f"Challenge {self.id} has options but is not a quiz")
        return self

    def can_show(self, progress: ProgressRecord) -> bool:
        """Check if every progress field this challenge depends on is set."""
        return all(progress.has_value(field) for field in self.requires)


class Challenge(BaseModel):
    """A challenge as seen by one user for one request."""

    definition: ChallengeDefinition
    state: ChallengeState = Field(default=ChallengeState.VISIBLE)
    input: str = Field(default="")
    error: str = Field(default="")
    success: str = Field(default="")

    @property
    def id(self) -> UUID:
        return self.definition.id

    @property
    def completed(self) -> bool:
        return self.state == ChallengeState.COMPLETED

    @property
    def checking(self) -> bool:
        return self.state == ChallengeState.CHECKING

    def begin_check(self, value: str) -> None:
        """Move into checking with a new submission, clearing old messages."""
        if self.state == ChallengeState.FAILED:
            self._move(ChallengeState.VISIBLE)
        self._move(ChallengeState.CHECKING)
        self.input = value
        self.error = ""
        self.success = ""

    def apply(self, outcome: Outcome) -> None:
        """Leave checking according to a validation outcome."""
        self._move(outcome.next_state())
        self.error = outcome.error
        self.success = outcome.success

    def _move(self, target: ChallengeState) -> None:
        validate_transition(self.state, target)
        self.state = target
