"""Sign-up and sign-in form schemas."""
import re
from typing import Any, Dict, Type, TypeVar

import pydantic
from pydantic import BaseModel, field_validator

from hellenika.config import settings
from hellenika.errors import ValidationError

_USERNAME = re.compile(r"^[a-zA-Z0-9_]+$")

FormT = TypeVar("FormT", bound=BaseModel)


class SignUpForm(BaseModel):
    username: str
    password: str
    remember_me: bool = False

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        value = value.strip()
        if len(value) < settings.auth.username_min_length:
            raise ValueError(
                f"Username must be at least {settings.auth.username_min_length} characters"
            )
        if len(value) > settings.auth.username_max_length:
            raise ValueError(
                f"Username must be less than {settings.auth.username_max_length} characters"
            )
        if not _USERNAME.match(value):
            raise ValueError("Username can only contain letters, numbers, and underscores")
        return value

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if len(value) < settings.auth.password_min_length:
            raise ValueError(
                f"Password must be at least {settings.auth.password_min_length} characters"
            )
        return value


class SignInForm(BaseModel):
    username: str
    password: str
    remember_me: bool = False

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Username is required")
        return value

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value


def parse_form(form_class: Type[FormT], data: Dict[str, Any]) -> FormT:
    """Validate form data, raising ValidationError with one message per field."""
    try:
        return form_class.model_validate(data)
    except pydantic.ValidationError as e:
        errors: Dict[str, str] = {}
        for error in e.errors():
            name = str(error["loc"][0]) if error["loc"] else "form"
            cause = error.get("ctx", {}).get("error")
            errors.setdefault(name, str(cause) if cause else error["msg"])
        raise ValidationError(errors) from e
