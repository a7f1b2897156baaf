from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest

from azchallenges.challenges import ChallengeCatalog, ChallengeEngine, Section
from azchallenges.config import CatalogConfig
from azchallenges.errors import PersistenceError
from azchallenges.inspector import Comparison, ResourceInspector, ResourceKind
from azchallenges.storage import ProgressCache, ProgressRecord, ProgressStore

SUBSCRIPTION = "0f4c8a9e-3b1d-4c52-9a7e-6d2f1b8c3e40"
USER = "alice@example.com"

CATALOG_CONFIG = CatalogConfig(
    tenant_id="72f988bf-86f1-41af-91ab-2d7cd011db47",
    website_principal_name="challenge-website",
    website_principal_object_id="5b0c1f3a-9d2e-4f6b-8a7c-1e3d5f7a9b2c",
)


class MemoryStore(ProgressStore):
    """Dict backed store that counts writes and can be told to fail."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.puts: list[str] = []
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key: str) -> Optional[bytes]:
        await asyncio.sleep(0)
        if self.fail_reads:
            raise OSError("store offline")
        return self.data.get(key)

    async def put(self, key: str, data: bytes) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise PersistenceError(f"Could not save progress for '{key}'")
        self.puts.append(key)
        self.data[key] = data


class FakeInspector(ResourceInspector):
    """Answers from fixed tables; yields on every call like a real inspector."""

    def __init__(
        self,
        resources: Optional[set[tuple[ResourceKind, str]]] = None,
        matches: Optional[dict[tuple[ResourceKind, str], bool]] = None,
        secrets: Optional[dict[tuple[str, str], str]] = None,
    ) -> None:
        self.resources = resources or set()
        self.matches = matches or {}
        self.secrets = secrets or {}
        self.errors: dict[str, Exception] = {}
        self.delay = 0.0
        self.calls: list[tuple[Any, ...]] = []

    async def _enter(self, name: str) -> None:
        await asyncio.sleep(self.delay)
        if name in self.errors:
            raise self.errors[name]

    async def resource_exists(self, subscription, resource_group, resource_name, resource_kind) -> bool:
        self.calls.append(("resource_exists", subscription, resource_group, resource_name, resource_kind))
        await self._enter(resource_name)
        return (resource_kind, resource_name) in self.resources

    async def configuration_matches(
        self,
        subscription,
        resource_group,
        resource_name,
        resource_kind,
        property_path,
        expected,
        comparison=Comparison.EQUALS,
    ) -> bool:
        self.calls.append(
            ("configuration_matches", resource_group, resource_name, resource_kind, property_path, expected)
        )
        await self._enter(resource_name)
        return self.matches.get((resource_kind, property_path), False)

    async def secret_value(self, vault_name: str, secret_name: str) -> Optional[str]:
        self.calls.append(("secret_value", vault_name, secret_name))
        await self._enter(vault_name)
        return self.secrets.get((vault_name, secret_name))


def resource_group_done(catalog: ChallengeCatalog, **fields: str) -> ProgressRecord:
    """Progress with the whole resource group section completed."""
    record = ProgressRecord(subscription_id=SUBSCRIPTION, resource_group="rg-challenges", **fields)
    for definition in catalog.definitions_for(Section.RESOURCE_GROUP):
        record = record.with_completion(definition.id)
    return record


@pytest.fixture
def catalog() -> ChallengeCatalog:
    return ChallengeCatalog.build(CATALOG_CONFIG)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def cache(store: MemoryStore) -> ProgressCache:
    return ProgressCache(store)


@pytest.fixture
def inspector() -> FakeInspector:
    return FakeInspector(resources={(ResourceKind.SUBSCRIPTION, SUBSCRIPTION)})


@pytest.fixture
def engine(catalog: ChallengeCatalog, cache: ProgressCache, inspector: FakeInspector) -> ChallengeEngine:
    return ChallengeEngine(catalog, cache, inspector)
