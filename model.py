import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, PlainSerializer, field_validator

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
DATE_FORMATS = ["%Y-%m-%d", "%d-%m-%Y", "%Y/%m/%d", "%d/%m/%Y"]
# Amounts must stay below 10**15 so sums fit the decimal context and a JSON float
MAX_AMOUNT_DIGITS = 15

RecordType = Literal["Income", "Expense"]


def _in_range(amount: Decimal) -> bool:
    return amount.is_finite() and amount.adjusted() < MAX_AMOUNT_DIGITS


def coerce_amount(value: Any) -> Decimal:
    """Parse an amount, falling back to zero for anything non-numeric or out of range."""
    if isinstance(value, Decimal):
        return value if _in_range(value) else Decimal(0)
    if isinstance(value, bool) or value is None:
        return Decimal(0)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal(0)
    return amount if _in_range(amount) else Decimal(0)


def parse_record_date(value: Any) -> date:
    """Accept ISO dates/datetimes and the day-first formats the clients send."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Invalid date format.")
    s = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValueError("Invalid date format.") from None


def _required_amount(value: Any) -> Decimal:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("amount is required")
    return coerce_amount(value)


Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
RecordDate = Annotated[date, BeforeValidator(parse_record_date)]


class UserRegister(BaseModel):
    name: str
    email: str
    password: str

    @field_validator("name", "email", "password")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name, email, and password are required")
        return v

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email format")
        return v


class UserLogin(BaseModel):
    email: str
    password: str

    @field_validator("email", "password")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Email and password are required")
        return v

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email format")
        return v


class User(BaseModel):
    id: str
    name: str
    email: str
    password_hash: str


class UserOut(BaseModel):
    id: str
    name: str
    email: str


class RecordIn(BaseModel):
    type: RecordType
    amount: Annotated[Money, BeforeValidator(_required_amount)]
    date: RecordDate
    category: str = ""
    description: str = ""


class Record(BaseModel):
    id: str
    owner_id: str
    type: str
    amount: Annotated[Money, BeforeValidator(coerce_amount)]
    date: RecordDate
    category: str = ""
    description: str = ""


class Totals(BaseModel):
    total_income: Money = Decimal(0)
    total_expense: Money = Decimal(0)
    total_balance: Money = Decimal(0)


class RegisterResult(BaseModel):
    message: str
    user: UserOut


class LoginResult(BaseModel):
    message: str
    token: str
    user: UserOut


class RecordResult(BaseModel):
    message: str
    record: Record


class RecordChangeResult(BaseModel):
    message: str
    record: Record
    totals: Totals


class RecordListResult(BaseModel):
    message: str
    data: list[Record]
    totals: Totals


class SearchResult(BaseModel):
    message: str
    total_results: int
    data: list[Record]


class ErrorResult(BaseModel):
    error: str
