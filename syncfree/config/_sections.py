"""Nested settings sections."""

from pydantic import BaseModel, Field


class OAuthSettings(BaseModel):
    client_id: str = "1571c322fff79945c3347586c851d6c7.access"
    redirect_uri: str = "https://syncfree.arnabbhowmik019.workers.dev/callback"
    authorize_url: str = "https://dash.cloudflare.com/oauth2/auth"
    scope: str = "r2:admin"
    trusted_origin: str = "https://syncfree.arnabbhowmik019.workers.dev"
    api_base_url: str = "https://api.cloudflare.com/client/v4"
    callback_port: int = Field(default=8765, ge=1, le=65535)
    token_name: str = "SyncFree Obsidian Plugin"


class NetworkSettings(BaseModel):
    connect_timeout: float = Field(default=10.0, gt=0)
    read_timeout: float = Field(default=120.0, gt=0)
    api_timeout: float = Field(default=30.0, gt=0)
