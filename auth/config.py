"""Session configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Session settings for the bearer-token adapter.

    Tokens are issued by the login service; this service only validates
    them and slides their expiry while the user stays active.
    """

    session_expiry_hours: int = Field(
        default=2160,  # 90 days
        description="Session lifetime in hours",
        ge=1,
        le=2160,
    )
    session_extend_on_activity: bool = Field(
        default=True,
        description="Whether to extend session expiry on activity",
    )
    session_extend_threshold_hours: int = Field(
        default=24,
        description="Extend session if less than this many hours remaining",
        ge=1,
    )
    session_cookie_name: str = Field(
        default="session_token",
        description="Cookie checked when no Authorization header is sent",
    )
