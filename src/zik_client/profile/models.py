"""Pydantic models for the user profile returned by GET /profile.

The API speaks camelCase JSON; the models expose snake_case attributes and
accept either spelling on input. Unknown fields are ignored so that new
server-side fields never break an older client.
"""

from __future__ import annotations

__all__ = [
    "NotificationPreferences",
    "PrivacySettings",
    "UserPreferences",
    "UserProfile",
]

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",  # Forward compat with newer API versions
    )


class NotificationPreferences(_ApiModel):
    email: bool = True
    push: bool = True
    daily_reminders: bool = True
    weekly_digest: bool = False


class PrivacySettings(_ApiModel):
    share_progress: bool = False
    public_profile: bool = False


class UserPreferences(_ApiModel):
    """User-controlled settings stored with the profile."""

    theme: Literal["light", "dark", "system"] = "system"
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    timezone: str = "UTC"
    language: str = "en"
    quest_categories: list[str] = Field(default_factory=list)
    privacy_settings: PrivacySettings = Field(default_factory=PrivacySettings)


class UserProfile(_ApiModel):
    """Profile of the authenticated user.

    Attributes:
        user_id: Stable user identifier (same as the ID token's subject).
        username: Unique handle.
        email: Account email.
        display_name: Name shown in the app.
        avatar_url: Optional avatar image URL.
        preferences: User preferences.
        onboarding_completed: Whether onboarding has been finished.
        created_at: Account creation time.
        last_login_at: Last login time, if tracked.
        updated_at: Last profile update.
    """

    user_id: str = Field(min_length=1)
    username: str = ""
    email: str = ""
    display_name: str = ""
    avatar_url: str | None = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    onboarding_completed: bool = False
    created_at: datetime | None = None
    last_login_at: datetime | None = None
    updated_at: datetime | None = None
