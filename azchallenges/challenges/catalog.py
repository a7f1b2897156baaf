"""Read-only registry of challenge definitions."""

from typing import Iterable, Iterator, Mapping, Optional
from uuid import UUID

from ..config import CatalogConfig
from ..errors import CatalogError
from .definitions import build_definitions
from .types import ChallengeDefinition, ChallengeKind, Section

# Sections whose challenges must all be completed before a section is shown.
SECTION_PREREQUISITES: dict[Section, tuple[Section, ...]] = {
    Section.RESOURCE_GROUP: (),
    Section.STORAGE_ACCOUNT: (Section.RESOURCE_GROUP,),
    Section.KEY_VAULT: (Section.RESOURCE_GROUP,),
    Section.SQL_SERVER: (Section.RESOURCE_GROUP,),
    Section.APP_SERVICE: (Section.RESOURCE_GROUP,),
    Section.NETWORK_SEGMENT: (Section.RESOURCE_GROUP,),
    Section.PRIVATE_ENDPOINT: (Section.NETWORK_SEGMENT,),
    Section.BONUS: (Section.RESOURCE_GROUP,),
}

# Validator types each kind of challenge may use.
KIND_VALIDATORS: dict[ChallengeKind, frozenset[str]] = {
    ChallengeKind.REQUIRES_TEXT_INPUT: frozenset({"subscription", "resource", "answer"}),
    ChallengeKind.REQUIRES_CONFIGURATION_CHECK: frozenset({"configuration", "secret", "acknowledge"}),
    ChallengeKind.QUIZ: frozenset({"answer", "acknowledge"}),
}


class ChallengeCatalog:
    """Ordered challenge definitions, grouped by section.

    The catalog is checked once on construction and never changes after.
    """

    def __init__(
        self,
        definitions: Iterable[ChallengeDefinition],
        prerequisites: Optional[Mapping[Section, tuple[Section, ...]]] = None,
    ):
        """Initialize the catalog.

        Args:
            definitions: Definitions in presentation order
            prerequisites: Section gates, defaults to SECTION_PREREQUISITES

        Raises:
            CatalogError: If the definitions are inconsistent
        """
        self._definitions = tuple(definitions)
        self._prerequisites = dict(SECTION_PREREQUISITES if prerequisites is None else prerequisites)
        self._by_id: dict[UUID, ChallengeDefinition] = {}
        self._by_section: dict[Section, list[ChallengeDefinition]] = {}

        writers: dict[str, UUID] = {}
        for definition in self._definitions:
            if definition.id in self._by_id:
                raise CatalogError(f"Duplicate challenge id {definition.id}")
            if definition.validator.type not in KIND_VALIDATORS[definition.kind]:
                raise CatalogError(
                    f"Challenge {definition.id} is a {definition.kind.value} challenge "
                    f"but uses a '{definition.validator.type}' validator"
                )
            if definition.records is not None:
                owner = writers.setdefault(definition.records.value, definition.id)
                if owner != definition.id:
                    raise CatalogError(
                        f"Challenges {owner} and {definition.id} both record {definition.records.value}"
                    )
            self._by_id[definition.id] = definition
            self._by_section.setdefault(definition.section, []).append(definition)

        for section, required in self._prerequisites.items():
            if section in required:
                raise CatalogError(f"Section {section.value} cannot require itself")

    @classmethod
    def build(cls, config: CatalogConfig) -> "ChallengeCatalog":
        """Build the catalog of built-in challenges."""
        return cls(build_definitions(config))

    def definitions_for(self, section: Section) -> list[ChallengeDefinition]:
        """Get the definitions of a section in catalog order."""
        return list(self._by_section.get(section, []))

    def definition_by_id(self, challenge_id: UUID) -> Optional[ChallengeDefinition]:
        """Get a definition by id, or None if the catalog has no such challenge."""
        return self._by_id.get(challenge_id)

    def sections(self) -> list[Section]:
        """Sections that have at least one challenge, in catalog order."""
        return list(self._by_section)

    def prerequisites_for(self, section: Section) -> tuple[Section, ...]:
        """Sections that gate a section directly."""
        return self._prerequisites.get(section, ())

    def __iter__(self) -> Iterator[ChallengeDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)
