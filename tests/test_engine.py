import asyncio
import logging
from uuid import UUID

import pytest

from azchallenges.challenges import ChallengeCatalog, ChallengeEngine, ChallengeState, Section
from azchallenges.challenges.engine import ALREADY_COMPLETED, GENERIC_ERROR, NOT_AVAILABLE
from azchallenges.challenges.types import ChallengeDefinition, ChallengeKind
from azchallenges.challenges.validators import AnswerCheck
from azchallenges.errors import InspectionError, PersistenceError
from azchallenges.inspector import ResourceKind
from azchallenges.storage import ProgressCache, ProgressRecord

from .conftest import SUBSCRIPTION, USER, FakeInspector, MemoryStore, resource_group_done

SUBSCRIPTION_ID = UUID("ad713b6f-0f21-4889-95ee-222ef1302735")
CREATE_GROUP_ID = UUID("6e224d1a-40f2-48c7-bf38-05b47962cddf")
GROUP_QUIZ_ID = UUID("23aca336-d1c4-4b66-806c-cddb6629f5a0")
CREATE_STORAGE_ID = UUID("15202bbe-94ad-4ebf-aa15-ed93b5cef11e")
LOG_EXTENSION_ID = UUID("c9ceb040-3e34-4b4b-a655-9634b522490c")
PUT_BLOB_ID = UUID("e3f14e1d-4c92-4ce7-b7c2-eaeba5710aa6")


def test_scenario_a_bad_subscription_leaves_progress_alone(engine: ChallengeEngine, store: MemoryStore) -> None:
    async def scenario() -> None:
        views = await engine.list_challenges(Section.RESOURCE_GROUP, USER)
        assert [v.definition.name for v in views] == ["Subscription"]

        outcome = await engine.check(SUBSCRIPTION_ID, USER, "not-a-guid")
        assert not outcome.completed
        assert "not in a valid GUID format" in outcome.error
        assert await engine.get_progress(USER) == ProgressRecord()

    asyncio.run(scenario())
    assert store.puts == []


def test_scenario_b_subscription_recorded_once(engine: ChallengeEngine, store: MemoryStore) -> None:
    async def scenario() -> ProgressRecord:
        outcome = await engine.check(SUBSCRIPTION_ID, USER, SUBSCRIPTION)
        assert outcome.completed
        assert outcome.success == "Success!"
        engine.invalidate_cache(USER)
        return await engine.get_progress(USER)

    progress = asyncio.run(scenario())
    assert progress.subscription_id == SUBSCRIPTION
    assert progress.completed_challenges == [SUBSCRIPTION_ID]


def test_scenario_c_storage_section_opens_after_resource_group(
    engine: ChallengeEngine, inspector: FakeInspector
) -> None:
    inspector.resources.add((ResourceKind.RESOURCE_GROUP, "rg-challenges"))

    async def scenario() -> None:
        assert await engine.list_challenges(Section.STORAGE_ACCOUNT, USER) == []
        assert not await engine.can_show_section(Section.STORAGE_ACCOUNT, USER)

        assert (await engine.check(SUBSCRIPTION_ID, USER, SUBSCRIPTION)).completed
        assert (await engine.check(CREATE_GROUP_ID, USER, "rg-challenges")).completed
        assert await engine.list_challenges(Section.STORAGE_ACCOUNT, USER) == []

        assert (await engine.check(GROUP_QUIZ_ID, USER, "Tenant")).completed
        views = await engine.list_challenges(Section.STORAGE_ACCOUNT, USER)
        assert [v.id for v in views] == [CREATE_STORAGE_ID]
        assert await engine.can_show_section(Section.STORAGE_ACCOUNT, USER)

        group = await engine.list_challenges(Section.RESOURCE_GROUP, USER)
        assert [v.state for v in group] == [ChallengeState.COMPLETED] * 3

    asyncio.run(scenario())


def test_scenario_d_reset_hides_section_again(
    engine: ChallengeEngine, cache: ProgressCache, catalog: ChallengeCatalog, store: MemoryStore
) -> None:
    async def scenario() -> None:
        await cache.set(USER, resource_group_done(catalog))
        assert await engine.list_challenges(Section.STORAGE_ACCOUNT, USER) != []

        await engine.reset_progress(USER)
        assert await engine.list_challenges(Section.STORAGE_ACCOUNT, USER) == []
        engine.invalidate_cache(USER)
        assert await engine.get_progress(USER) == ProgressRecord()

    asyncio.run(scenario())
    assert ProgressRecord.from_bytes(store.data[USER]) == ProgressRecord()


def test_scenario_e_concurrent_checks_both_recorded(
    engine: ChallengeEngine, cache: ProgressCache, catalog: ChallengeCatalog
) -> None:
    async def scenario() -> ProgressRecord:
        await cache.set(USER, resource_group_done(catalog, storage_account="stchallenges"))
        first, second = await asyncio.gather(
            engine.check(LOG_EXTENSION_ID, USER, "json"),
            engine.check(PUT_BLOB_ID, USER, "PutBlob"),
        )
        assert first.completed and second.completed
        engine.invalidate_cache(USER)
        return await engine.get_progress(USER)

    progress = asyncio.run(scenario())
    assert progress.is_completed(LOG_EXTENSION_ID)
    assert progress.is_completed(PUT_BLOB_ID)


def test_repeated_checks_are_idempotent(engine: ChallengeEngine, store: MemoryStore, inspector: FakeInspector) -> None:
    async def scenario() -> None:
        await engine.check(SUBSCRIPTION_ID, USER, SUBSCRIPTION)
        calls = len(inspector.calls)
        for _ in range(3):
            outcome = await engine.check(SUBSCRIPTION_ID, USER, "something else")
            assert outcome.completed
            assert outcome.success == ALREADY_COMPLETED
        assert len(inspector.calls) == calls

    asyncio.run(scenario())
    assert store.puts == [USER]
    assert ProgressRecord.from_bytes(store.data[USER]).subscription_id == SUBSCRIPTION


def test_hidden_challenge_is_refused_without_inspection(engine: ChallengeEngine, inspector: FakeInspector) -> None:
    outcome = asyncio.run(engine.check(CREATE_STORAGE_ID, USER, "stchallenges"))
    assert outcome.error == NOT_AVAILABLE
    assert inspector.calls == []


def test_unknown_challenge(engine: ChallengeEngine) -> None:
    outcome = asyncio.run(engine.check(UUID(int=1), USER, "x"))
    assert not outcome.completed
    assert "Unknown challenge" in outcome.error


def test_inspection_failure_becomes_generic_error(
    engine: ChallengeEngine, inspector: FakeInspector, store: MemoryStore, caplog: pytest.LogCaptureFixture
) -> None:
    inspector.errors[SUBSCRIPTION] = InspectionError("token request failed")

    with caplog.at_level(logging.ERROR, logger="azchallenges.challenges.engine"):
        outcome = asyncio.run(engine.check(SUBSCRIPTION_ID, USER, SUBSCRIPTION))

    assert not outcome.completed
    assert outcome.error == GENERIC_ERROR
    assert store.puts == []
    assert "token request failed" in caplog.text


def test_failure_in_one_check_does_not_affect_another(
    engine: ChallengeEngine, inspector: FakeInspector, cache: ProgressCache, catalog: ChallengeCatalog
) -> None:
    inspector.errors["broken"] = RuntimeError("boom")
    inspector.resources.add((ResourceKind.KEY_VAULT, "kv-challenges"))

    async def scenario():
        await cache.set(USER, resource_group_done(catalog))
        return await asyncio.gather(
            engine.check(CREATE_STORAGE_ID, USER, "broken"),
            engine.check(UUID("59159eab-8a58-484a-880a-fc787a00cdfc"), USER, "kv-challenges"),
        )

    failed, passed = asyncio.run(scenario())
    assert failed.error == GENERIC_ERROR
    assert passed.completed


def test_persistence_failure_propagates(engine: ChallengeEngine, store: MemoryStore) -> None:
    store.fail_writes = True
    with pytest.raises(PersistenceError):
        asyncio.run(engine.check(SUBSCRIPTION_ID, USER, SUBSCRIPTION))


def test_reset_failure_propagates(engine: ChallengeEngine, store: MemoryStore) -> None:
    store.fail_writes = True
    with pytest.raises(PersistenceError):
        asyncio.run(engine.reset_progress(USER))


def test_completion_without_message_is_not_recorded(
    cache: ProgressCache, inspector: FakeInspector, store: MemoryStore
) -> None:
    definition = ChallengeDefinition(
        id=UUID("33333333-3333-4333-8333-333333333333"),
        section=Section.RESOURCE_GROUP,
        kind=ChallengeKind.QUIZ,
        name="Silent",
        quiz_options=("Yes", "No"),
        validator=AnswerCheck(answers={"Yes": ""}),
    )
    engine = ChallengeEngine(ChallengeCatalog([definition]), cache, inspector)

    outcome = asyncio.run(engine.check(definition.id, USER, "Yes"))
    assert not outcome.completed
    assert outcome.error == ""
    assert store.puts == []


def test_slow_check_times_out(catalog: ChallengeCatalog, cache: ProgressCache, inspector: FakeInspector) -> None:
    inspector.delay = 1.0
    engine = ChallengeEngine(catalog, cache, inspector, check_timeout=0.01)

    outcome = asyncio.run(engine.check(SUBSCRIPTION_ID, USER, SUBSCRIPTION))
    assert outcome.error == GENERIC_ERROR


def test_challenge_state(engine: ChallengeEngine, cache: ProgressCache, catalog: ChallengeCatalog) -> None:
    async def scenario() -> None:
        assert await engine.challenge_state(SUBSCRIPTION_ID, USER) == ChallengeState.VISIBLE
        assert await engine.challenge_state(CREATE_GROUP_ID, USER) == ChallengeState.NOT_VISIBLE
        await cache.set(USER, resource_group_done(catalog))
        assert await engine.challenge_state(GROUP_QUIZ_ID, USER) == ChallengeState.COMPLETED
        assert await engine.challenge_state(CREATE_STORAGE_ID, USER) == ChallengeState.VISIBLE
        assert await engine.challenge_state(UUID(int=0), USER) == ChallengeState.NOT_VISIBLE

    asyncio.run(scenario())


def test_private_endpoint_section_needs_network_and_group(
    engine: ChallengeEngine, cache: ProgressCache, catalog: ChallengeCatalog
) -> None:
    fields = dict(storage_account="st", key_vault="kv", sql_server="sql", virtual_network="vnet")

    async def scenario() -> None:
        record = resource_group_done(catalog, **fields)
        await cache.set(USER, record)
        assert await engine.list_challenges(Section.PRIVATE_ENDPOINT, USER) == []

        for definition in catalog.definitions_for(Section.NETWORK_SEGMENT):
            record = record.with_completion(definition.id)
        await cache.set(USER, record)
        assert len(await engine.list_challenges(Section.PRIVATE_ENDPOINT, USER)) == 4

        # the resource group section is still required through the network section
        record = record.model_copy(update={"completed_challenges": record.completed_challenges[3:]})
        await cache.set(USER, record)
        assert await engine.list_challenges(Section.PRIVATE_ENDPOINT, USER) == []

    asyncio.run(scenario())


def test_submit_moves_view_through_states(engine: ChallengeEngine) -> None:
    async def scenario() -> None:
        (view,) = await engine.list_challenges(Section.RESOURCE_GROUP, USER)

        await engine.submit(view, USER, "not-a-guid")
        assert view.state == ChallengeState.FAILED
        assert view.error

        await engine.submit(view, USER, SUBSCRIPTION)
        assert view.state == ChallengeState.COMPLETED
        assert view.success == "Success!"

        await engine.submit(view, USER)
        assert view.completed
        assert view.success == ALREADY_COMPLETED

    asyncio.run(scenario())


def test_concurrent_checks_of_one_challenge_record_once(
    engine: ChallengeEngine, inspector: FakeInspector, store: MemoryStore
) -> None:
    other = "9a8b7c6d-5e4f-4a3b-9c2d-1e0f9a8b7c6d"
    inspector.resources.add((ResourceKind.SUBSCRIPTION, other))

    async def scenario():
        return await asyncio.gather(
            engine.check(SUBSCRIPTION_ID, USER, SUBSCRIPTION),
            engine.check(SUBSCRIPTION_ID, USER, other),
        )

    first, second = asyncio.run(scenario())
    assert first.completed and second.completed
    assert sorted([first.success, second.success]) == sorted(["Success!", ALREADY_COMPLETED])
    assert store.puts == [USER]

    recorded = SUBSCRIPTION if first.success == "Success!" else other
    stored = ProgressRecord.from_bytes(store.data[USER])
    assert stored.subscription_id == recorded
    assert stored.completed_challenges == [SUBSCRIPTION_ID]


def test_bonus_section_needs_only_resource_group_and_core_resources(
    engine: ChallengeEngine, cache: ProgressCache, catalog: ChallengeCatalog
) -> None:
    async def scenario() -> None:
        await cache.set(USER, resource_group_done(catalog))
        assert await engine.can_show_section(Section.BONUS, USER)
        assert await engine.list_challenges(Section.BONUS, USER) == []

        core = resource_group_done(catalog, storage_account="st", key_vault="kv", sql_server="sql")
        await cache.set(USER, core)
        assert len(await engine.list_challenges(Section.BONUS, USER)) == 5

    asyncio.run(scenario())
