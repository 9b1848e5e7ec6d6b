"""Request and response models for the HTTP surface."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..domain.contracts import CreateLedgerEntryInput, RegisterUserInput
from ..domain.ledger import LedgerEntry, PaymentMethod
from ..domain.user import Gender, User, UserStatus
from ..errors import ValidationFailed

YEAR_PATTERN = r"^\d{4}$"
MONTH_PATTERN = r"^(0[1-9]|1[0-2])$"
DAY_PATTERN = r"^(0[1-9]|[12]\d|3[01])$"
HOUR_PATTERN = r"^([01]\d|2[0-3])$"
DATE_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$"


class RegisterRequest(BaseModel):
    """Payload accepted when registering an identity."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str = Field(..., min_length=1)
    cpf: str = Field(..., min_length=1)
    gender: Gender
    status: UserStatus = UserStatus.active
    email_verified: bool = False
    user_ns: str | None = Field(default=None, min_length=1)
    token_talkbi: str | None = Field(default=None, min_length=1)

    def to_domain(self) -> RegisterUserInput:
        return RegisterUserInput(**self.model_dump())


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(..., min_length=1)


class UpdateUserRequest(BaseModel):
    """Partial profile update; omitted fields are left untouched."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=6)
    phone: str | None = Field(default=None, min_length=1)
    cpf: str | None = Field(default=None, min_length=1)
    gender: Gender | None = None
    status: UserStatus | None = None
    email_verified: bool | None = None

    def split(self) -> tuple[dict[str, Any], str | None]:
        """Return the profile patch and the new password (if any) separately."""
        patch = _non_null_patch(self, nullable=frozenset())
        password = patch.pop("password", None)
        return patch, password


class UserResponse(BaseModel):
    """Serialised identity; the password hash and tenant token are never included."""

    id: str
    name: str
    email: EmailStr
    phone: str
    cpf: str
    status: UserStatus
    gender: Gender
    email_verified: bool
    user_ns: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.user_id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            cpf=user.cpf,
            status=user.status,
            gender=user.gender,
            email_verified=user.email_verified,
            user_ns=user.user_ns,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class LedgerEntryCreate(BaseModel):
    """Fields of a new payable or receivable; the owner comes from the request context."""

    model_config = ConfigDict(extra="forbid")

    year: str = Field(..., pattern=YEAR_PATTERN, examples=["2025"])
    month: str = Field(..., pattern=MONTH_PATTERN, examples=["09"])
    day: str = Field(..., pattern=DAY_PATTERN, examples=["20"])
    hour: str = Field(..., pattern=HOUR_PATTERN, examples=["10"])
    amount: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2, examples=[340.75])
    description: str = Field(..., min_length=1)
    invoice_number: str = Field(..., min_length=1)
    payment_method: PaymentMethod
    is_recurring: bool = False
    recurring_time: str | None = None
    category: str = Field(..., min_length=1)
    installment: str | None = None
    paid_status: str = Field(..., min_length=1)
    due_date: str = Field(..., pattern=DATE_PATTERN, examples=["2025-09-20"])
    type: str = Field(..., min_length=1)

    def to_domain(self) -> CreateLedgerEntryInput:
        return CreateLedgerEntryInput(**self.model_dump())


class LedgerEntryUpdate(BaseModel):
    """Partial ledger update; omitted fields are left untouched."""

    model_config = ConfigDict(extra="forbid")

    year: str | None = Field(default=None, pattern=YEAR_PATTERN)
    month: str | None = Field(default=None, pattern=MONTH_PATTERN)
    day: str | None = Field(default=None, pattern=DAY_PATTERN)
    hour: str | None = Field(default=None, pattern=HOUR_PATTERN)
    amount: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=2)
    description: str | None = Field(default=None, min_length=1)
    invoice_number: str | None = Field(default=None, min_length=1)
    payment_method: PaymentMethod | None = None
    is_recurring: bool | None = None
    recurring_time: str | None = None
    category: str | None = Field(default=None, min_length=1)
    installment: str | None = None
    paid_status: str | None = Field(default=None, min_length=1)
    due_date: str | None = Field(default=None, pattern=DATE_PATTERN)
    type: str | None = Field(default=None, min_length=1)

    def to_patch(self) -> dict[str, Any]:
        return _non_null_patch(self, nullable=frozenset({"recurring_time", "installment"}))


class LedgerEntryResponse(BaseModel):
    id: str
    user_id: str | None = None
    user_ns: str | None = None
    year: str
    month: str
    day: str
    hour: str
    amount: float
    description: str
    invoice_number: str
    payment_method: PaymentMethod
    is_recurring: bool
    recurring_time: str | None = None
    category: str
    installment: str | None = None
    paid_status: str
    due_date: str
    type: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, entry: LedgerEntry) -> "LedgerEntryResponse":
        return cls(
            id=entry.entry_id,
            user_id=entry.user_id,
            user_ns=entry.user_ns,
            year=entry.year,
            month=entry.month,
            day=entry.day,
            hour=entry.hour,
            amount=float(entry.amount),
            description=entry.description,
            invoice_number=entry.invoice_number,
            payment_method=entry.payment_method,
            is_recurring=entry.is_recurring,
            recurring_time=entry.recurring_time,
            category=entry.category,
            installment=entry.installment,
            paid_status=entry.paid_status,
            due_date=entry.due_date,
            type=entry.type,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )


class TotalResponse(BaseModel):
    total: float


class DeletedResponse(BaseModel):
    id: str
    deleted: bool = True


def _non_null_patch(model: BaseModel, *, nullable: frozenset[str]) -> dict[str, Any]:
    """Return the explicitly set fields, rejecting ``null`` for columns that require a value."""
    patch = model.model_dump(exclude_unset=True)
    rejected = sorted(name for name, value in patch.items() if value is None and name not in nullable)
    if rejected:
        raise ValidationFailed(
            "fields cannot be null",
            errors=[{"loc": ["body", name], "msg": "value cannot be null"} for name in rejected],
        )
    return patch
