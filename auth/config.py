"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """Authentication configuration."""

    jwt_algorithm: str = Field(
        default="HS256",
        description="Algorithm access tokens are signed with",
    )
    cookie_name: str = Field(
        default="authToken",
        description="HTTP-only cookie carrying the access token",
    )
    public_paths: list[str] = Field(
        default_factory=lambda: ["/health", "/docs", "/openapi.json"],
        description="Paths served without authentication",
    )
