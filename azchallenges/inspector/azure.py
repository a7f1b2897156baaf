"""Resource inspector backed by the Azure Resource Manager REST API."""

import asyncio
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, NamedTuple, Optional
from urllib.parse import quote

import httpx

from ..config import Settings
from ..errors import InspectionError, ResourceNotFoundError
from .base import Comparison, ResourceInspector, ResourceKind
from .properties import compare, resolve

logger = logging.getLogger(__name__)

VAULT_SCOPE = "https://vault.azure.net/.default"

_GROUP = "/subscriptions/{subscription}/resourceGroups/{group}"
_STORAGE = _GROUP + "/providers/Microsoft.Storage/storageAccounts/{name}"
_KEY_VAULT = _GROUP + "/providers/Microsoft.KeyVault/vaults/{name}"
_SQL = _GROUP + "/providers/Microsoft.Sql/servers/{name}"
_SITE = _GROUP + "/providers/Microsoft.Web/sites/{name}"
_DIAGNOSTICS = "/providers/microsoft.insights/diagnosticSettings"

_VAULT_NAME = re.compile(r"^[A-Za-z0-9-]{3,24}$")


class Endpoint(NamedTuple):
    """ARM path template and api-version for a resource kind."""

    path: str
    api_version: str


ENDPOINTS: dict[ResourceKind, Endpoint] = {
    ResourceKind.SUBSCRIPTION: Endpoint("/subscriptions/{name}", "2020-01-01"),
    ResourceKind.RESOURCE_GROUP: Endpoint("/subscriptions/{subscription}/resourcegroups/{name}", "2021-04-01"),
    ResourceKind.STORAGE_ACCOUNT: Endpoint(_STORAGE, "2022-09-01"),
    ResourceKind.STORAGE_BLOB_DIAGNOSTICS: Endpoint(
        _STORAGE + "/blobServices/default" + _DIAGNOSTICS, "2021-05-01-preview"
    ),
    ResourceKind.STORAGE_ROLE_ASSIGNMENTS: Endpoint(
        _STORAGE + "/providers/Microsoft.Authorization/roleAssignments", "2022-04-01"
    ),
    ResourceKind.KEY_VAULT: Endpoint(_KEY_VAULT, "2022-07-01"),
    ResourceKind.KEY_VAULT_DIAGNOSTICS: Endpoint(_KEY_VAULT + _DIAGNOSTICS, "2021-05-01-preview"),
    ResourceKind.SQL_SERVER: Endpoint(_SQL, "2021-11-01"),
    ResourceKind.SQL_SERVER_AUDITING: Endpoint(_SQL + "/auditingSettings/default", "2021-11-01"),
    ResourceKind.SQL_SERVER_FIREWALL_RULES: Endpoint(_SQL + "/firewallRules", "2021-11-01"),
    ResourceKind.SQL_SERVER_VNET_RULES: Endpoint(_SQL + "/virtualNetworkRules", "2021-11-01"),
    ResourceKind.APP_SERVICE: Endpoint(_SITE, "2022-03-01"),
    ResourceKind.APP_SERVICE_CONFIG: Endpoint(_SITE + "/config/web", "2022-03-01"),
    ResourceKind.APP_SERVICE_LOGS: Endpoint(_SITE + "/config/logs", "2022-03-01"),
    ResourceKind.VIRTUAL_NETWORK: Endpoint(
        _GROUP + "/providers/Microsoft.Network/virtualNetworks/{name}", "2022-07-01"
    ),
}


class AccessToken(NamedTuple):
    value: str
    expires_at: float


class TokenProvider(ABC):
    """Source of bearer tokens, cached per scope until shortly before expiry."""

    REFRESH_MARGIN = 60.0

    def __init__(self, client: httpx.AsyncClient):
        self.client = client
        self._tokens: dict[str, AccessToken] = {}
        self._lock = asyncio.Lock()

    async def token(self, scope: str) -> str:
        """Get a bearer token for a scope."""
        async with self._lock:
            cached = self._tokens.get(scope)
            if cached and cached.expires_at - self.REFRESH_MARGIN > time.monotonic():
                return cached.value

            try:
                response = await self._request(scope)
            except httpx.HTTPError as e:
                raise InspectionError(f"Token request for {scope} failed: {e}") from e
            if response.status_code != 200:
                raise InspectionError(
                    f"Token request for {scope} failed with status {response.status_code}"
                )
            payload = response.json()
            token = AccessToken(
                value=payload["access_token"],
                expires_at=time.monotonic() + float(payload.get("expires_in", 3600)),
            )
            self._tokens[scope] = token
            return token.value

    @abstractmethod
    async def _request(self, scope: str) -> httpx.Response:
        """Request a new token from the identity endpoint."""


class ClientSecretCredentials(TokenProvider):
    """Client credentials flow against the Microsoft identity platform."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        login_url: str = "https://login.microsoftonline.com",
    ):
        super().__init__(client)
        self.token_url = f"{login_url.rstrip('/')}/{tenant_id}/oauth2/v2.0/token"
        self.client_id = client_id
        self._client_secret = client_secret

    async def _request(self, scope: str) -> httpx.Response:
        return await self.client.post(
            self.token_url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self._client_secret,
                "scope": scope,
            },
        )


class ManagedIdentityCredentials(TokenProvider):
    """Tokens from the instance metadata service of the hosting resource."""

    METADATA_URL = "http://169.254.169.254/metadata/identity/oauth2/token"

    async def _request(self, scope: str) -> httpx.Response:
        resource = scope.removesuffix("/.default")
        return await self.client.get(
            self.METADATA_URL,
            params={"api-version": "2018-02-01", "resource": resource},
            headers={"Metadata": "true"},
        )


class AzureResourceInspector(ResourceInspector):
    """Inspects Azure resources through Azure Resource Manager."""

    def __init__(
        self,
        credentials: TokenProvider,
        client: httpx.AsyncClient,
        management_url: str = "https://management.azure.com",
    ):
        """Initialize the inspector.

        Args:
            credentials: Token source for management and vault scopes
            client: HTTP client, its timeout bounds every call
            management_url: Base URL of Azure Resource Manager
        """
        self.credentials = credentials
        self.client = client
        self.management_url = management_url.rstrip("/")
        self.management_scope = f"{self.management_url}/.default"

    @classmethod
    def from_settings(cls, settings: Settings) -> "AzureResourceInspector":
        """Create an inspector with its own HTTP client.

        Uses client credentials when a client id and secret are configured,
        otherwise the managed identity of the host.
        """
        client = httpx.AsyncClient(
            timeout=settings.inspector_timeout,
            headers={"Accept": "application/json"},
        )
        if settings.client_id and settings.client_secret:
            credentials: TokenProvider = ClientSecretCredentials(
                client,
                tenant_id=settings.tenant_id,
                client_id=settings.client_id,
                client_secret=settings.client_secret.get_secret_value(),
                login_url=settings.login_url,
            )
        else:
            credentials = ManagedIdentityCredentials(client)
        return cls(credentials, client, management_url=settings.management_url)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def resource_exists(
        self,
        subscription: str,
        resource_group: Optional[str],
        resource_name: str,
        resource_kind: ResourceKind,
    ) -> bool:
        response = await self._get_resource(subscription, resource_group, resource_name, resource_kind)
        if response.status_code == 404:
            return False
        self._raise_for_status(response, resource_kind, resource_name)
        return True

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
        response = await self._get_resource(subscription, resource_group, resource_name, resource_kind)
        if response.status_code == 404:
            raise ResourceNotFoundError(f"{resource_kind.value} '{resource_name}' not found")
        self._raise_for_status(response, resource_kind, resource_name)

        values = resolve(response.json(), property_path)
        matched = compare(values, comparison, expected)
        logger.debug(
            "%s '%s' %s: %r %s %r -> %s",
            resource_kind.value, resource_name, property_path,
            values, comparison.value, expected, matched,
        )
        return matched

    async def secret_value(self, vault_name: str, secret_name: str) -> Optional[str]:
        if not _VAULT_NAME.match(vault_name):
            raise InspectionError(f"Invalid Key Vault name '{vault_name}'")

        url = f"https://{vault_name}.vault.azure.net/secrets/{quote(secret_name, safe='')}"
        response = await self._get(url, VAULT_SCOPE, {"api-version": "7.4"})
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise InspectionError(
                f"Reading secret '{secret_name}' from '{vault_name}' failed with status {response.status_code}"
            )
        return response.json().get("value")

    def resource_url(
        self,
        subscription: str,
        resource_group: Optional[str],
        resource_name: str,
        resource_kind: ResourceKind,
    ) -> str:
        """Build the ARM URL of a resource, escaping every user supplied part."""
        endpoint = ENDPOINTS[resource_kind]
        path = endpoint.path.format(
            subscription=quote(subscription, safe=""),
            group=quote(resource_group or "", safe=""),
            name=quote(resource_name, safe=""),
        )
        return self.management_url + path

    async def _get_resource(
        self,
        subscription: str,
        resource_group: Optional[str],
        resource_name: str,
        resource_kind: ResourceKind,
    ) -> httpx.Response:
        url = self.resource_url(subscription, resource_group, resource_name, resource_kind)
        api_version = ENDPOINTS[resource_kind].api_version
        return await self._get(url, self.management_scope, {"api-version": api_version})

    async def _get(self, url: str, scope: str, params: dict) -> httpx.Response:
        token = await self.credentials.token(scope)
        try:
            return await self.client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            raise InspectionError(f"Request to {url} failed: {e}") from e

    @staticmethod
    def _raise_for_status(
        response: httpx.Response,
        resource_kind: ResourceKind,
        resource_name: str,
    ) -> None:
        if not response.is_success:
            raise InspectionError(
                f"Looking up {resource_kind.value} '{resource_name}' failed with status {response.status_code}"
            )
