"""Pydantic schemas for the identity-provider session routes."""

from pydantic import BaseModel, Field


class SessionCreateRequest(BaseModel):
    """OAuth authorization code returned to the front end by the provider."""

    code: str | None = Field(None, max_length=2048)


class RedirectUrlResponse(BaseModel):
    redirectUrl: str
