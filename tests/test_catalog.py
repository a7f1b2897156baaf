from uuid import UUID

import pytest

from azchallenges.challenges import SECTION_PREREQUISITES, ChallengeCatalog, ChallengeDefinition, ChallengeKind, Section
from azchallenges.challenges.validators import AcknowledgeCheck, AnswerCheck, ResourceCheck
from azchallenges.errors import CatalogError
from azchallenges.inspector import ResourceKind
from azchallenges.storage import ProgressField, ProgressRecord

from .conftest import CATALOG_CONFIG


def _definition(id: str, **overrides) -> ChallengeDefinition:
    values = dict(
        id=UUID(id),
        section=Section.BONUS,
        kind=ChallengeKind.REQUIRES_CONFIGURATION_CHECK,
        name="Test",
        validator=AcknowledgeCheck(),
    )
    values.update(overrides)
    return ChallengeDefinition(**values)


def test_builtin_catalog_sections_and_order(catalog: ChallengeCatalog) -> None:
    assert catalog.sections() == list(Section)
    names = [d.name for d in catalog.definitions_for(Section.RESOURCE_GROUP)]
    assert names == ["Subscription", "Create", "Quiz"]
    assert len(catalog.definitions_for(Section.STORAGE_ACCOUNT)) == 10
    assert len(catalog.definitions_for(Section.BONUS)) == 5


def test_builtin_ids_are_unique(catalog: ChallengeCatalog) -> None:
    ids = [d.id for d in catalog]
    assert len(ids) == len(set(ids)) == len(catalog)


def test_every_progress_field_has_one_writer(catalog: ChallengeCatalog) -> None:
    writers = [d.records for d in catalog if d.records is not None]
    assert sorted(writers) == sorted(ProgressField)


def test_definition_by_id(catalog: ChallengeCatalog) -> None:
    definition = catalog.definition_by_id(UUID("ad713b6f-0f21-4889-95ee-222ef1302735"))
    assert definition is not None
    assert definition.records == ProgressField.SUBSCRIPTION_ID
    assert catalog.definition_by_id(UUID(int=0)) is None


def test_configuration_is_interpolated_at_build(catalog: ChallengeCatalog) -> None:
    assign = catalog.definition_by_id(UUID("b93ec8ad-17d1-46c7-817e-db7d2b76125d"))
    assert CATALOG_CONFIG.website_principal_name in assign.statement
    assert CATALOG_CONFIG.website_principal_object_id in assign.validator.property_path

    settings = catalog.definition_by_id(UUID("49b09563-44e6-4203-8f49-cede211d9bba"))
    assert CATALOG_CONFIG.tenant_id in settings.statement


def test_only_the_subscription_challenge_shows_on_empty_progress(catalog: ChallengeCatalog) -> None:
    shown = [d.name for d in catalog.definitions_for(Section.RESOURCE_GROUP) if d.can_show(ProgressRecord())]
    assert shown == ["Subscription"]


def test_prerequisites(catalog: ChallengeCatalog) -> None:
    assert catalog.prerequisites_for(Section.RESOURCE_GROUP) == ()
    assert catalog.prerequisites_for(Section.PRIVATE_ENDPOINT) == (Section.NETWORK_SEGMENT,)
    assert set(SECTION_PREREQUISITES) == set(Section)


def test_duplicate_ids_rejected() -> None:
    first = _definition("11111111-1111-4111-8111-111111111111")
    with pytest.raises(CatalogError):
        ChallengeCatalog([first, first.model_copy(update={"name": "Copy"})])


def test_two_writers_for_one_field_rejected() -> None:
    check = ResourceCheck(resource_kind=ResourceKind.KEY_VAULT, label="Key Vault")
    definitions = [
        _definition(
            id,
            kind=ChallengeKind.REQUIRES_TEXT_INPUT,
            validator=check,
            records=ProgressField.KEY_VAULT,
        )
        for id in ("11111111-1111-4111-8111-111111111111", "22222222-2222-4222-8222-222222222222")
    ]
    with pytest.raises(CatalogError):
        ChallengeCatalog(definitions)


def test_kind_must_fit_validator() -> None:
    with pytest.raises(CatalogError):
        ChallengeCatalog([
            _definition(
                "11111111-1111-4111-8111-111111111111",
                kind=ChallengeKind.QUIZ,
                quiz_options=("Yes",),
                validator=ResourceCheck(resource_kind=ResourceKind.KEY_VAULT, label="Key Vault"),
            )
        ])


def test_quiz_needs_options() -> None:
    with pytest.raises(ValueError):
        _definition(
            "11111111-1111-4111-8111-111111111111",
            kind=ChallengeKind.QUIZ,
            validator=AnswerCheck(answers={"Yes": "Success!"}),
        )
