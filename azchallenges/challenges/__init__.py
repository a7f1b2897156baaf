"""Challenge catalog, validation and progression."""

from .catalog import SECTION_PREREQUISITES, ChallengeCatalog
from .engine import ChallengeEngine
from .state import ChallengeState, ChallengeStateError, Outcome
from .types import Challenge, ChallengeDefinition, ChallengeKind, Section

__all__ = [
    "SECTION_PREREQUISITES",
    "Challenge",
    "ChallengeCatalog",
    "ChallengeDefinition",
    "ChallengeEngine",
    "ChallengeKind",
    "ChallengeState",
    "ChallengeStateError",
    "Outcome",
    "Section",
]
