"""Read-only view of live cloud resource configuration."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional


class ResourceKind(str, Enum):
    """Resources (and sub-resources) an inspector knows how to look up."""

    SUBSCRIPTION = "subscription"
    RESOURCE_GROUP = "resource_group"
    STORAGE_ACCOUNT = "storage_account"
    STORAGE_BLOB_DIAGNOSTICS = "storage_blob_diagnostics"
    STORAGE_ROLE_ASSIGNMENTS = "storage_role_assignments"
    KEY_VAULT = "key_vault"
    KEY_VAULT_DIAGNOSTICS = "key_vault_diagnostics"
    SQL_SERVER = "sql_server"
    SQL_SERVER_AUDITING = "sql_server_auditing"
    SQL_SERVER_FIREWALL_RULES = "sql_server_firewall_rules"
    SQL_SERVER_VNET_RULES = "sql_server_vnet_rules"
    APP_SERVICE = "app_service"
    APP_SERVICE_CONFIG = "app_service_config"
    APP_SERVICE_LOGS = "app_service_logs"
    VIRTUAL_NETWORK = "virtual_network"


class Comparison(str, Enum):
    """How resolved property values are compared with an expected value."""

    EQUALS = "equals"  # any value equals expected
    NOT_EQUALS = "not_equals"  # at least one value, none equal expected
    INCLUDES = "includes"  # values hold every expected item
    CONTAINS = "contains"  # any value contains expected text
    PRESENT = "present"  # any non-empty value


class ResourceInspector(ABC):
    """Queries against cloud resource configuration.

    Every method may raise; callers treat any exception as "could not verify".
    """

    @abstractmethod
    async def resource_exists(
        self,
        subscription: str,
        resource_group: Optional[str],
        resource_name: str,
        resource_kind: ResourceKind,
    ) -> bool:
        """Check if a resource exists."""

    @abstractmethod
    async def configuration_matches(
        self,
        subscription: str,
        resource_group: Optional[str],
        resource_name: str,
        resource_kind: ResourceKind,
        property_path: str,
        expected: Any,
        comparison: Comparison = Comparison.EQUALS,
    ) -> bool:
        """Check if a property of a resource compares as expected."""

    @abstractmethod
    async def secret_value(self, vault_name: str, secret_name: str) -> Optional[str]:
        """Read a secret's current value, or None if it does not exist."""
