# usermgmt/schemas/user.py
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic_core import PydanticCustomError

from usermgmt.core.validation import (
    CREATE_USER_RULES,
    UPDATE_USER_RULES,
    describe_rules,
    validate_fields,
)
from usermgmt.models.users import UserRole


def _raise_on_rule_errors(errors) -> None:
    if errors:
        raise PydanticCustomError(
            "field_rules",
            "Invalid fields: {fields}",
            {"fields": ", ".join(sorted(errors)), "errors": errors},
        )


class UserCreate(BaseModel):
    model_config = ConfigDict(json_schema_extra={
        "x-field-rules": describe_rules(CREATE_USER_RULES),
        "example": {"email": "user@example.com", "password": "Test123!@", "name": "Kim"},
    })

    email: str
    # 僅用於建立帳號的輸入，不會在輸出 schema 中出現
    password: str
    name: str

    @model_validator(mode="after")
    def _check_rules(self) -> "UserCreate":
        _raise_on_rule_errors(validate_fields(CREATE_USER_RULES, self.model_dump()))
        return self


class UserUpdate(BaseModel):
    """部分更新：只合併有帶的欄位。"""

    model_config = ConfigDict(json_schema_extra={
        "x-field-rules": describe_rules(UPDATE_USER_RULES),
    })

    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None

    @model_validator(mode="after")
    def _check_rules(self) -> "UserUpdate":
        _raise_on_rule_errors(
            validate_fields(UPDATE_USER_RULES, self.model_dump(exclude_unset=True), partial=True)
        )
        return self


class UserRead(BaseModel):
    """對外輸出的使用者；沒有密碼欄位。"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    role: UserRole
    is_email_verified: bool
    created_at: datetime
    updated_at: datetime


class UserPublic(BaseModel):
    """登入回應裡的精簡使用者資訊。"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: UserRole
