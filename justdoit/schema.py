"""
JUSTDOIT - Schema Definition
============================
Entities, input payloads and result objects shared by the session guard,
the entity stores and the CLI.

Rows come back from Supabase as plain dicts and are validated into these
models; inputs are validated here before any remote call is made.

Author: JustDoIt / TaskMaster Pro
"""

from enum import Enum
from typing import Optional, Dict, Any, Type, TypeVar
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
import pydantic
import uuid

from .errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

TEMP_ID_PREFIX = "tmp-"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def temp_id() -> str:
    """Placeholder id for optimistic rows not yet confirmed by the server"""
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex[:12]}"


def parse_input(model: Type[ModelT], data: Any) -> ModelT:
    """Validate a payload, converting pydantic errors into ValidationError"""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "input"
        raise ValidationError(f"{field}: {first.get('msg', 'invalid value')}") from e


# ============================================================
# ACCOUNT & SESSION
# ============================================================

class Account(BaseModel):
    """Authenticated identity owning rows in user-scoped tables"""
    id: str
    email: str = ""
    display_name: Optional[str] = None

    @classmethod
    def from_user(cls, user: Any) -> "Account":
        metadata = getattr(user, "user_metadata", None) or {}
        return cls(
            id=str(user.id),
            email=getattr(user, "email", None) or "",
            display_name=metadata.get("name")
        )


class AuthSession(BaseModel):
    """Current credential; at most one per SessionGuard"""
    access_token: str
    refresh_token: str
    expires_at: Optional[int] = None
    account: Account
    persisted: bool = True  # False for remember_me=False (memory only)

    @classmethod
    def from_supabase(cls, session: Any, persisted: bool = True) -> "AuthSession":
        return cls(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=getattr(session, "expires_at", None),
            account=Account.from_user(session.user),
            persisted=persisted
        )


class AuthResult(BaseModel):
    """Outcome of sign-up / sign-in, shown to the user as-is"""
    success: bool
    message: str
    kind: Optional[str] = None  # invalid_credentials, unconfirmed_account, ...


class Credentials(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)  # never stripped

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class Registration(Credentials):
    display_name: str = Field(min_length=1)

    @field_validator("display_name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


# ============================================================
# TODOS
# ============================================================

class TodoStatus(str, Enum):
    """Todo lifecycle states"""
    ACTIVE = "active"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Todo(BaseModel):
    id: str
    description: str
    deadline: Optional[datetime] = None
    priority: Optional[str] = None   # priority name chosen in the UI
    receiver: Optional[str] = None   # contact the todo is assigned to
    status: TodoStatus = TodoStatus.ACTIVE
    user_id: str
    created_at: datetime


class TodoInput(BaseModel):
    """Fields a client may supply when creating a todo"""
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(min_length=1)
    deadline: Optional[datetime] = None
    priority: Optional[str] = None
    receiver: Optional[str] = None
    status: TodoStatus = TodoStatus.ACTIVE


class TodoUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    description: Optional[str] = Field(default=None, min_length=1)
    deadline: Optional[datetime] = None
    priority: Optional[str] = None
    receiver: Optional[str] = None
    status: Optional[TodoStatus] = None


# ============================================================
# PRIORITIES
# ============================================================

class Priority(BaseModel):
    id: str
    name: str
    email_notification: bool = False
    sms_notification: bool = False
    whatsapp_notification: bool = False
    user_id: str
    created_at: datetime


class PriorityInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    email_notification: bool = False
    sms_notification: bool = False
    whatsapp_notification: bool = False


class PriorityUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1)
    email_notification: Optional[bool] = None
    sms_notification: Optional[bool] = None
    whatsapp_notification: Optional[bool] = None


# ============================================================
# CONTACTS (global, not owner scoped)
# ============================================================

class Contact(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    created_at: datetime


class ContactInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def blank_phone_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class ContactUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def blank_phone_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


# ============================================================
# SETTINGS (one record per account)
# ============================================================

class Settings(BaseModel):
    id: str
    user_id: str
    sender_email: Optional[str] = None
    email_template: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class SettingsUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    sender_email: Optional[EmailStr] = None
    email_template: Optional[str] = None


def changes_of(update: BaseModel) -> Dict[str, Any]:
    """Explicitly supplied fields of a partial update, JSON-ready"""
    changes = update.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise ValidationError("Nothing to update")
    return changes
