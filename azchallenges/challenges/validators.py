"""Validation logic attached to challenge definitions.

Validators are plain data tagged by ``type``. ``run_validator`` picks the
implementation for a tag; the family is fixed, so catalog data stays
serialisable and each check can be tested on its own.
"""

import logging
from typing import Annotated, Any, Awaitable, Callable, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..inspector.base import Comparison, ResourceInspector, ResourceKind
from ..storage.progress import ProgressField, ProgressRecord
from .state import Outcome

logger = logging.getLogger(__name__)

DEFAULT_SUCCESS = "Success!"
WRONG_ANSWER = "Sorry that's not correct"


class _Check(BaseModel):
    model_config = ConfigDict(frozen=True)


class SubscriptionCheck(_Check):
    """Input is a subscription id that exists."""

    type: Literal["subscription"] = "subscription"
    success_message: str = DEFAULT_SUCCESS


class ResourceCheck(_Check):
    """Input names a resource that exists in the user's resource group."""

    type: Literal["resource"] = "resource"
    resource_kind: ResourceKind
    label: str = Field(description="Resource name used in error messages")
    success_message: str = DEFAULT_SUCCESS


class ConfigurationCheck(_Check):
    """A property of a previously recorded resource has the expected value."""

    type: Literal["configuration"] = "configuration"
    resource_kind: ResourceKind
    target: ProgressField = Field(description="Progress field naming the resource")
    property_path: str
    expected: Any = True
    comparison: Comparison = Comparison.EQUALS
    error_message: str
    success_message: str = DEFAULT_SUCCESS


class SecretCheck(_Check):
    """A secret with a known name can be read from the recorded Key Vault."""

    type: Literal["secret"] = "secret"
    secret_name: str
    vault: ProgressField = ProgressField.KEY_VAULT
    error_message: str = "Key Vault is not configured correctly"
    success_template: str = "The super secret: {value}"


class AnswerCheck(_Check):
    """Input is one of a set of literal answers, each with its own reply."""

    type: Literal["answer"] = "answer"
    answers: dict[str, str]
    case_sensitive: bool = True
    error_message: str = WRONG_ANSWER


class AcknowledgeCheck(_Check):
    """Completes on any submission."""

    type: Literal["acknowledge"] = "acknowledge"
    success_message: str = "Well done!"


Validator = Annotated[
    Union[
        SubscriptionCheck,
        ResourceCheck,
        ConfigurationCheck,
        SecretCheck,
        AnswerCheck,
        AcknowledgeCheck,
    ],
    Field(discriminator="type"),
]


def _has_text(value: str) -> bool:
    return value is not None and value.strip() != ""


def _is_guid(value: str) -> bool:
    try:
        UUID(value)
    except (TypeError, ValueError):
        return False
    return True


def _with_progress(template: Any, progress: ProgressRecord) -> Any:
    """Fill ``{field}`` placeholders in a string from progress fields."""
    if not isinstance(template, str) or "{" not in template:
        return template
    return template.format(**{field.value: progress.value_of(field) or "" for field in ProgressField})


async def _check_subscription(
    check: SubscriptionCheck, value: str, progress: ProgressRecord, inspector: ResourceInspector
) -> Outcome:
    if not (_has_text(value) and _is_guid(value)):
        return Outcome.failed(f"Subscription Id is not in a valid GUID format '{value}'.")
    if await inspector.resource_exists(value, None, value, ResourceKind.SUBSCRIPTION):
        return Outcome.passed(check.success_message)
    return Outcome.failed(f"Could not find subscription with id '{value}'.")


async def _check_resource(
    check: ResourceCheck, value: str, progress: ProgressRecord, inspector: ResourceInspector
) -> Outcome:
    if _has_text(value) and await inspector.resource_exists(
        progress.subscription_id or "",
        progress.resource_group,
        value,
        check.resource_kind,
    ):
        return Outcome.passed(check.success_message)
    return Outcome.failed(f"Could not find {check.label} '{value}'.")


async def _check_configuration(
    check: ConfigurationCheck, value: str, progress: ProgressRecord, inspector: ResourceInspector
) -> Outcome:
    if not progress.has_value(check.target):
        return Outcome.failed(check.error_message)
    matched = await inspector.configuration_matches(
        progress.subscription_id or "",
        progress.resource_group,
        progress.value_of(check.target) or "",
        check.resource_kind,
        check.property_path,
        _with_progress(check.expected, progress),
        check.comparison,
    )
    if matched:
        return Outcome.passed(check.success_message)
    return Outcome.failed(check.error_message)


async def _check_secret(
    check: SecretCheck, value: str, progress: ProgressRecord, inspector: ResourceInspector
) -> Outcome:
    if not progress.has_value(check.vault):
        return Outcome.failed(check.error_message)
    secret = await inspector.secret_value(progress.value_of(check.vault) or "", check.secret_name)
    if secret is not None and _has_text(secret):
        return Outcome.passed(check.success_template.format(value=secret))
    return Outcome.failed(check.error_message)


async def _check_answer(
    check: AnswerCheck, value: str, progress: ProgressRecord, inspector: ResourceInspector
) -> Outcome:
    if value is None:
        return Outcome.failed(check.error_message)
    if check.case_sensitive:
        reply = check.answers.get(value)
    else:
        folded = value.strip().casefold()
        reply = next(
            (message for answer, message in check.answers.items() if answer.casefold() == folded),
            None,
        )
    if reply is None:
        return Outcome.failed(check.error_message)
    return Outcome.passed(reply)


async def _check_acknowledge(
    check: AcknowledgeCheck, value: str, progress: ProgressRecord, inspector: ResourceInspector
) -> Outcome:
    return Outcome.passed(check.success_message)


_HANDLERS: dict[str, Callable[..., Awaitable[Outcome]]] = {
    "subscription": _check_subscription,
    "resource": _check_resource,
    "configuration": _check_configuration,
    "secret": _check_secret,
    "answer": _check_answer,
    "acknowledge": _check_acknowledge,
}


async def run_validator(
    validator: Validator,
    value: str,
    progress: ProgressRecord,
    inspector: ResourceInspector,
) -> Outcome:
    """Validate a submission with the implementation registered for its tag.

    Args:
        validator: Validator data from a challenge definition
        value: Text the user submitted
        progress: Snapshot of the user's progress
        inspector: Read-only access to live resources

    Returns:
        The outcome; inspector failures propagate as exceptions
    """
    handler = _HANDLERS.get(validator.type)
    if handler is None:
        raise ValueError(f"No validator registered for '{validator.type}'")
    outcome = await handler(validator, value, progress, inspector)
    logger.debug("%s validator -> %s", validator.type, outcome)
    return outcome
