# usermgmt/core/validation.py
"""
欄位驗證規則表：
- 每個 DTO 對應一張 {欄位名: [FieldRule, ...]} 的設定表，由 validate_fields() 統一檢查，
  在資料進到 service 之前就擋下。
- describe_rules() 把同一張表輸出成文件用的結構（掛在 OpenAPI 的 x-field-rules）。
"""
from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Sequence

from email_validator import EmailNotValidError, validate_email

PASSWORD_SYMBOLS = "!@#$%^&*"
PASSWORD_MIN_LENGTH = 8

_ALLOWED_PASSWORD_RE = re.compile(r"^[A-Za-z0-9!@#$%^&*]+$")


class FieldRule(NamedTuple):
    check: Callable[[Any], bool]
    message: str


def _is_email(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _min_length(n: int) -> Callable[[Any], bool]:
    return lambda v: isinstance(v, str) and len(v) >= n


def _max_length(n: int) -> Callable[[Any], bool]:
    return lambda v: isinstance(v, str) and len(v) <= n


def _has_upper(v: Any) -> bool:
    return isinstance(v, str) and any(c.isupper() for c in v)


def _has_digit(v: Any) -> bool:
    return isinstance(v, str) and any(c.isdigit() for c in v)


def _has_symbol(v: Any) -> bool:
    return isinstance(v, str) and any(c in PASSWORD_SYMBOLS for c in v)


def _only_allowed_chars(v: Any) -> bool:
    return isinstance(v, str) and bool(_ALLOWED_PASSWORD_RE.match(v))


def _not_blank(v: Any) -> bool:
    return isinstance(v, str) and bool(v.strip())


EMAIL_RULES: List[FieldRule] = [
    FieldRule(_is_email, "must be a valid email address"),
]

STRONG_PASSWORD_RULES: List[FieldRule] = [
    FieldRule(_min_length(PASSWORD_MIN_LENGTH), f"must be at least {PASSWORD_MIN_LENGTH} characters"),
    FieldRule(_has_upper, "must contain at least one upper-case letter"),
    FieldRule(_has_digit, "must contain at least one digit"),
    FieldRule(_has_symbol, f"must contain at least one of {PASSWORD_SYMBOLS}"),
    FieldRule(_only_allowed_chars, f"may only contain letters, digits and {PASSWORD_SYMBOLS}"),
]

NAME_MAX_LENGTH = 100

NAME_RULES: List[FieldRule] = [
    FieldRule(_not_blank, "must not be blank"),
    FieldRule(_max_length(NAME_MAX_LENGTH), f"must be at most {NAME_MAX_LENGTH} characters"),
]

CREATE_USER_RULES: Dict[str, List[FieldRule]] = {
    "email": EMAIL_RULES,
    "password": STRONG_PASSWORD_RULES,
    "name": NAME_RULES,
}

# 部分更新：只檢查有帶的欄位
UPDATE_USER_RULES: Dict[str, List[FieldRule]] = CREATE_USER_RULES

LOGIN_RULES: Dict[str, List[FieldRule]] = {
    "email": EMAIL_RULES,
    "password": [
        FieldRule(_min_length(PASSWORD_MIN_LENGTH), f"must be at least {PASSWORD_MIN_LENGTH} characters"),
    ],
}


def validate_fields(
    rules: Mapping[str, Sequence[FieldRule]],
    data: Mapping[str, Any],
    partial: bool = False,
) -> Dict[str, List[str]]:
    """回傳 {欄位: [錯誤訊息...]}；空 dict 代表全部通過。"""
    errors: Dict[str, List[str]] = {}
    for field, field_rules in rules.items():
        value = data.get(field)
        if value is None:
            if not partial:
                errors[field] = ["field required"]
            continue
        failed = [rule.message for rule in field_rules if not rule.check(value)]
        if failed:
            errors[field] = failed
    return errors


def describe_rules(rules: Mapping[str, Sequence[FieldRule]]) -> Dict[str, List[str]]:
    return {field: [rule.message for rule in field_rules] for field, field_rules in rules.items()}
