"""Credential shapes handed to the plugin loader by the host."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field, SecretStr


class ApiAuth(BaseModel):
    """API key credentials."""

    type: Literal["api"] = "api"
    key: SecretStr = Field(..., description="Backend API key")


class OAuthAuth(BaseModel):
    """OAuth credentials. Not supported by the bridge."""

    type: Literal["oauth"] = "oauth"
    access: str = Field(..., description="OAuth access token")
    refresh: str | None = Field(default=None, description="OAuth refresh token")
    expires: int | None = Field(default=None, description="Expiry as epoch millis")


Auth = Annotated[ApiAuth | OAuthAuth, Field(discriminator="type")]
