# schemas.py
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    constr,
    field_validator,
    model_validator,
)

NonEmptyStr = constr(min_length=1)
PositiveAmount = Annotated[float, Field(gt=0, strict=True, allow_inf_nan=False)]

BULK_MAX_ITEMS = 100
TOP_DEFAULT_LIMIT = 10
TOP_MAX_LIMIT = 50
# Largest value a 64-bit INTEGER column holds
MAX_RECORD_ID = 2**63 - 1

RecordId = Annotated[int, Field(ge=1, le=MAX_RECORD_ID)]


class ExpenseType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(to_naive_utc)]


# ---- users ----


class UserCreate(BaseModel):
    email: EmailStr
    password: constr(min_length=6, max_length=72)
    name: NonEmptyStr


class UserLogin(BaseModel):
    email: EmailStr
    password: NonEmptyStr


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str


class UserResponse(BaseModel):
    message: Optional[str] = None
    user: UserOut


class Token(BaseModel):
    message: str = "Signed in successfully"
    token: str
    token_type: str = "bearer"


# ---- expense input ----


class ExpenseCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: NonEmptyStr
    description: NonEmptyStr
    amount: PositiveAmount
    date: UtcDatetime
    type: ExpenseType


class ExpenseBulkCreate(BaseModel):
    expenses: List[ExpenseCreate] = Field(min_length=1, max_length=BULK_MAX_ITEMS)


class ExpenseUpdate(BaseModel):
    """Partial update: only the fields sent are applied."""

    model_config = ConfigDict(use_enum_values=True)

    title: Optional[NonEmptyStr] = None
    description: Optional[NonEmptyStr] = None
    amount: Optional[PositiveAmount] = None
    date: Optional[UtcDatetime] = None
    type: Optional[ExpenseType] = None

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class ExpenseBulkDelete(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    expense_ids: List[RecordId] = Field(
        alias="expenseIds", min_length=1, max_length=BULK_MAX_ITEMS
    )


# ---- query strings ----


class DateRangeQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: UtcDatetime = Field(alias="startDate")
    end_date: UtcDatetime = Field(alias="endDate")

    @model_validator(mode="after")
    def check_order(self):
        if self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self


class SummaryQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: Optional[UtcDatetime] = Field(default=None, alias="startDate")
    end_date: Optional[UtcDatetime] = Field(default=None, alias="endDate")

    @model_validator(mode="after")
    def check_order(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self


class TopQuery(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    limit: int = Field(default=TOP_DEFAULT_LIMIT, ge=1, le=TOP_MAX_LIMIT)
    type: Optional[ExpenseType] = None


# ---- expense output ----


class ExpenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    amount: float
    date: datetime
    type: ExpenseType
    user_id: int = Field(serialization_alias="userId")


class ExpenseResponse(BaseModel):
    message: str
    expense: ExpenseOut


class ExpenseDetail(BaseModel):
    expense: ExpenseOut


class ExpenseList(BaseModel):
    expenses: List[ExpenseOut]


class ExpenseBulkResponse(BaseModel):
    message: str
    count: int
    expenses: List[ExpenseOut]


class MessageResponse(BaseModel):
    message: str


class BulkDeleteResponse(BaseModel):
    message: str
    deleted_count: int = Field(serialization_alias="deletedCount")


# ---- statistics ----


class TypeBreakdown(BaseModel):
    type: ExpenseType
    total: float
    count: int
    average: float


class Summary(BaseModel):
    total_income: float = Field(serialization_alias="totalIncome")
    total_expenses: float = Field(serialization_alias="totalExpenses")
    balance: float
    breakdown: List[TypeBreakdown]


class SummaryResponse(BaseModel):
    summary: Summary


class CategoryStat(BaseModel):
    type: ExpenseType
    count: int
    total_amount: float = Field(serialization_alias="totalAmount")
    avg_amount: float = Field(serialization_alias="avgAmount")
    max_amount: float = Field(serialization_alias="maxAmount")
    min_amount: float = Field(serialization_alias="minAmount")


class CategoryStatsResponse(BaseModel):
    categories: List[CategoryStat]
