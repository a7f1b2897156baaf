"""Application settings loaded from the environment."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..storage.progress import progress_key


def _default_database_path() -> Path:
    return Path.home() / ".local" / "share" / "azchallenges" / "progress.db"


class CatalogConfig(BaseModel):
    """Values interpolated into challenge text when the catalog is built."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(default="", description="Tenant the website authenticates against")
    website_principal_name: str = Field(
        default="", description="Display name of the website's service principal"
    )
    website_principal_object_id: str = Field(
        default="", description="Object id of the website's service principal"
    )


class Settings(BaseSettings):
    """Settings for the challenge engine and the Azure inspector."""

    model_config = SettingsConfigDict(
        env_prefix="AZCHALLENGES_",
        env_file=".env",
        extra="ignore",
    )

    # Azure
    tenant_id: str = Field(default="")
    client_id: Optional[str] = Field(default=None)
    client_secret: Optional[SecretStr] = Field(default=None)
    website_principal_name: str = Field(default="")
    website_principal_object_id: str = Field(default="")
    management_url: str = Field(default="https://management.azure.com")
    login_url: str = Field(default="https://login.microsoftonline.com")

    # Timeouts in seconds
    inspector_timeout: float = Field(default=30.0, gt=0)
    check_timeout: Optional[float] = Field(default=60.0, gt=0)

    # Storage
    database_path: Path = Field(default_factory=_default_database_path)
    anonymous_user: str = Field(default="unauthenticated", min_length=1)

    log_level: str = Field(default="INFO")

    def catalog_config(self) -> CatalogConfig:
        """Snapshot of the values the catalog interpolates into its text."""
        return CatalogConfig(
            tenant_id=self.tenant_id,
            website_principal_name=self.website_principal_name,
            website_principal_object_id=self.website_principal_object_id,
        )

    def user_key(self, identity: Optional[str]) -> str:
        """Storage key for an identity, using the configured anonymous bucket."""
        return progress_key(identity, anonymous=self.anonymous_user)
