"""Per-user progress record and user key handling."""

import hashlib
import re
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ANONYMOUS_USER = "unauthenticated"

_PLAIN_KEY = re.compile(r"[a-z0-9_.@-]+")


class ProgressField(str, Enum):
    """Resource identifiers collected while completing challenges."""

    SUBSCRIPTION_ID = "subscription_id"
    RESOURCE_GROUP = "resource_group"
    STORAGE_ACCOUNT = "storage_account"
    KEY_VAULT = "key_vault"
    SQL_SERVER = "sql_server"
    APP_SERVICE = "app_service"
    VIRTUAL_NETWORK = "virtual_network"


class ProgressRecord(BaseModel):
    """Durable progress of one user.

    Serialised with camelCase names so the stored JSON keeps the
    ``subscriptionId`` / ``completedChallenges`` shape.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    subscription_id: Optional[str] = None
    resource_group: Optional[str] = None
    storage_account: Optional[str] = None
    key_vault: Optional[str] = None
    sql_server: Optional[str] = None
    app_service: Optional[str] = None
    virtual_network: Optional[str] = None
    completed_challenges: list[UUID] = Field(default_factory=list)

    @field_validator("completed_challenges")
    @classmethod
    def _unique_ids(cls, value: list[UUID]) -> list[UUID]:
        return list(dict.fromkeys(value))

    def value_of(self, field: ProgressField) -> Optional[str]:
        """Get the value collected for a progress field."""
        return getattr(self, field.value)

    def has_value(self, field: ProgressField) -> bool:
        """Check if a progress field holds a non-blank value."""
        value = self.value_of(field)
        return value is not None and value.strip() != ""

    def is_completed(self, challenge_id: UUID) -> bool:
        """Check if a challenge id is in the completed set."""
        return challenge_id in self.completed_challenges

    def with_completion(
        self,
        challenge_id: UUID,
        field: Optional[ProgressField] = None,
        value: Optional[str] = None,
    ) -> "ProgressRecord":
        """Return a copy with a challenge marked completed.

        Args:
            challenge_id: Id of the completed challenge
            field: Progress field the challenge writes, if any
            value: Value stored in ``field``

        Returns:
            Updated copy; the receiver is left untouched
        """
        update: dict = {}
        if challenge_id not in self.completed_challenges:
            update["completed_challenges"] = [*self.completed_challenges, challenge_id]
        if field is not None:
            update[field.value] = value
        return self.model_copy(update=update, deep=True)

    def to_bytes(self) -> bytes:
        """Serialise to the stored JSON form."""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "ProgressRecord":
        """Deserialise from the stored JSON form."""
        return cls.model_validate_json(data)


def progress_key(identity: Optional[str], anonymous: str = ANONYMOUS_USER) -> str:
    """Derive a storage key from an authenticated identity name.

    Names are compared case-insensitively. A name made only of
    ``[a-z0-9_.@-]`` is used as is; any other name is replaced by
    ``~`` and the SHA-256 of the lower-cased name, so distinct identities
    never share a key and every key stays plain ASCII.

    Args:
        identity: Identity name, or None when nobody is signed in
        anonymous: Shared bucket used when there is no usable identity

    Returns:
        Storage key for the identity
    """
    if identity is None or not identity.strip():
        return anonymous
    name = identity.strip().lower()
    if name != anonymous and _PLAIN_KEY.fullmatch(name):
        return name
    return "~" + hashlib.sha256(name.encode("utf-8")).hexdigest()
