"""
Request and response models for token verification.
"""

from pydantic import BaseModel, Field


class VerifyTokenRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Login token from the magic link")


class VerifyTokenResponse(BaseModel):
    email: str = Field(..., description="Verified e-mail address")
    display_name: str = Field(..., description="Display name for the chat UI")
