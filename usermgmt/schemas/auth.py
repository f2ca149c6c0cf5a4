from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic_core import PydanticCustomError

from usermgmt.core.validation import LOGIN_RULES, describe_rules, validate_fields
from usermgmt.schemas.user import UserPublic


class LoginRequest(BaseModel):
    model_config = ConfigDict(json_schema_extra={
        "x-field-rules": describe_rules(LOGIN_RULES),
        "example": {"email": "user@example.com", "password": "Test123!@"},
    })

    email: str
    password: str

    @model_validator(mode="after")
    def _check_rules(self) -> "LoginRequest":
        errors = validate_fields(LOGIN_RULES, self.model_dump())
        if errors:
            raise PydanticCustomError(
                "field_rules",
                "Invalid fields: {fields}",
                {"fields": ", ".join(sorted(errors)), "errors": errors},
            )
        return self


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginResponse(Token):
    refresh_token: str
    user: UserPublic


class RefreshRequest(BaseModel):
    # 允許缺值 / 空字串進到 service，由 service 直接回 401
    refresh_token: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
