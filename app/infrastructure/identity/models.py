"""Resident identity models.

Defines the profile fields the delivery engine needs to reach a resident.
Profiles are owned by the users module of the portal; the engine only reads
them.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserProfile(BaseModel):
    """Resident profile as seen by the notification engine.

    Attributes:
        user_id: Portal user id
        is_active: Inactive residents never receive notifications
        push_token: FCM registration token of the resident's device
        email: Email address for the email channel
        phone_number: E.164 phone number for the SMS channel
        locale: Preferred language tag
    """

    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(..., min_length=1)
    is_active: bool = True
    push_token: Optional[str] = None
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None
    locale: str = "en"

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: Optional[str]) -> Optional[str]:
        """Validate E.164 phone format if provided."""
        if v is None or v == "":
            return None
        v = v.strip()
        if not v.startswith("+") or not v[1:].isdigit():
            raise ValueError(f"Phone number must be in E.164 format: {v}")
        if len(v) < 8 or len(v) > 16:
            raise ValueError(f"Phone number length invalid: {v}")
        return v
