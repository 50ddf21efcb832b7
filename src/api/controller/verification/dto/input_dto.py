"""
Input DTOs for email verification endpoints.
"""

from pydantic import BaseModel, Field, field_validator

from src.infra.config.settings import get_settings

settings = get_settings()


class VerifyCodeRequestDto(BaseModel):
    """DTO for submitting a verification code."""

    code: str = Field(..., description="Numeric code received by email")

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        v = (v or "").strip()
        length = settings.VERIFICATION_CODE_LENGTH
        if len(v) != length or not v.isascii() or not v.isdigit():
            raise ValueError(f'Code must be {length} digits')
        return v

    model_config = {
        "json_schema_extra": {
            "example": {"code": "482913"}
        }
    }
