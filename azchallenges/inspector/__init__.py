"""Resource inspection for challenge validation."""

from .azure import AzureResourceInspector, ClientSecretCredentials, ManagedIdentityCredentials
from .base import Comparison, ResourceInspector, ResourceKind

__all__ = [
    "AzureResourceInspector",
    "ClientSecretCredentials",
    "Comparison",
    "ManagedIdentityCredentials",
    "ResourceInspector",
    "ResourceKind",
]
