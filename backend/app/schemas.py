from datetime import datetime
from typing import Annotated, Optional, List, Literal

from pydantic import BaseModel, Field, StringConstraints, field_validator, model_validator

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

Brand = Literal[
    "Honda", "Yamaha", "Bajaj", "TVS", "Hero", "KTM", "Royal Enfield", "Suzuki", "Kawasaki"
]
PaymentMethod = Literal["Cash", "UPI", "Card", "Bank Transfer", "Cheque"]


def _check_year(v):
    if v is None:
        return v
    max_year = datetime.now().year + 1
    if v < 1990 or v > max_year:
        raise ValueError(f"Year must be between 1990 and {max_year}")
    return v


def _normalize_email(v):
    if v is None:
        return v
    v = v.strip().lower()
    if not v:
        return None
    if "@" not in v:
        raise ValueError("Invalid email address")
    return v


# --------------------
# User Schemas
# --------------------
class UserBase(BaseModel):
    username: NonEmptyStr
    name: NonEmptyStr
    role: Literal["Admin", "Staff"] = "Staff"


class UserCreate(UserBase):
    password: NonEmptyStr


class User(UserBase):
    user_id: int

    class Config:
        from_attributes = True


# =========================
# BIKE SCHEMAS
# =========================

class BikeCreate(BaseModel):
    """
    Payload for adding a bike to inventory.

    Backend will:
    - uppercase bike_number
    - reject duplicate bike_number
    - leave sell_price / profit / days_to_sell empty until the bike is sold
    """
    bike_number: NonEmptyStr
    brand: Brand
    model: NonEmptyStr
    year: int
    buy_price: float = Field(..., ge=0)
    purchase_date: datetime
    status: Literal["available", "reserved"] = "available"

    color: Optional[str] = None
    fuel_type: Literal["Petrol", "Electric"] = "Petrol"
    mileage: Optional[int] = Field(None, ge=0)
    engine_cc: Optional[int] = Field(None, ge=0)
    condition_rating: int = Field(8, ge=1, le=10)
    notes: Optional[str] = None

    @field_validator("bike_number")
    @classmethod
    def uppercase_number(cls, v):
        return v.upper()

    @field_validator("year")
    @classmethod
    def year_in_range(cls, v):
        return _check_year(v)


class BikeUpdate(BaseModel):
    """
    Partial update – all fields optional.
    status can move between available and reserved; 'sold' is only
    reachable through a sale.
    """
    bike_number: Optional[NonEmptyStr] = None
    brand: Optional[Brand] = None
    model: Optional[NonEmptyStr] = None
    year: Optional[int] = None
    buy_price: Optional[float] = Field(None, ge=0)
    purchase_date: Optional[datetime] = None
    status: Optional[Literal["available", "reserved"]] = None
    color: Optional[str] = None
    fuel_type: Optional[Literal["Petrol", "Electric"]] = None
    mileage: Optional[int] = Field(None, ge=0)
    engine_cc: Optional[int] = Field(None, ge=0)
    condition_rating: Optional[int] = Field(None, ge=1, le=10)
    notes: Optional[str] = None

    @field_validator("bike_number")
    @classmethod
    def uppercase_number(cls, v):
        return v.upper() if v is not None else v

    @field_validator("year")
    @classmethod
    def year_in_range(cls, v):
        return _check_year(v)


class BikeRead(BaseModel):
    id: int
    bike_number: str
    brand: str
    model: str
    year: int
    buy_price: float
    sell_price: Optional[float] = None
    profit: Optional[float] = None
    profit_percent: Optional[float] = None
    status: str
    purchase_date: datetime
    sell_date: Optional[datetime] = None
    days_to_sell: Optional[int] = None
    color: Optional[str] = None
    fuel_type: Optional[str] = None
    mileage: Optional[int] = None
    engine_cc: Optional[int] = None
    condition_rating: Optional[int] = None
    notes: Optional[str] = None
    sale_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BikeSummary(BaseModel):
    id: int
    bike_number: str
    brand: str
    model: str
    year: int

    class Config:
        from_attributes = True


# =========================
# CUSTOMER SCHEMAS
# =========================

class CustomerCreate(BaseModel):
    name: NonEmptyStr
    phone: NonEmptyStr
    address: NonEmptyStr
    email: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    occupation: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return _normalize_email(v)


class CustomerUpdate(BaseModel):
    """total_spent / total_bikes_bought / customer_type are not editable."""
    name: Optional[NonEmptyStr] = None
    phone: Optional[NonEmptyStr] = None
    address: Optional[NonEmptyStr] = None
    email: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    occupation: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return _normalize_email(v)


class CustomerRead(BaseModel):
    id: int
    name: str
    phone: str
    email: Optional[str] = None
    address: str
    date_of_birth: Optional[datetime] = None
    occupation: Optional[str] = None
    total_spent: float
    total_bikes_bought: int
    last_purchase_date: Optional[datetime] = None
    customer_type: str
    notes: Optional[str] = None
    is_active: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerSummary(BaseModel):
    id: int
    name: str
    phone: str

    class Config:
        from_attributes = True


# =========================
# SALES SCHEMAS
# =========================

class SaleCreate(BaseModel):
    bike_id: int
    buyer_name: NonEmptyStr
    buyer_phone: NonEmptyStr
    buyer_address: NonEmptyStr
    selling_price: float = Field(..., ge=0)
    discount: float = Field(0, ge=0)
    payment_mode: PaymentMethod = Field(..., description="Cash, UPI, Card, Bank Transfer, Cheque")
    notes: Optional[str] = None


class SaleUpdate(BaseModel):
    # Financial fields are fixed once the sale exists
    notes: Optional[str] = None


class SaleRead(BaseModel):
    id: int
    sale_number: str
    invoice_number: str
    bike_id: int
    customer_id: int
    buyer_name: str
    buyer_phone: str
    buyer_address: str
    selling_price: float
    discount: float
    final_amount: float
    profit: float
    profit_percent: float
    payment_mode: str
    payment_status: Optional[str] = None
    invoice_path: Optional[str] = None
    notes: Optional[str] = None
    sold_by: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    bike: Optional[BikeSummary] = None
    customer: Optional[CustomerSummary] = None

    class Config:
        from_attributes = True


class SaleSummary(BaseModel):
    id: int
    sale_number: str
    invoice_number: str
    selling_price: float

    class Config:
        from_attributes = True


class CustomerDetail(BaseModel):
    customer: CustomerRead
    purchases: List[SaleRead]


# =========================
# PAYMENT SCHEMAS
# =========================

class PaymentLogCreate(BaseModel):
    amount: float = Field(..., gt=0)
    payment_method: PaymentMethod
    payment_date: datetime
    notes: Optional[str] = None


class PaymentLogRead(BaseModel):
    id: int
    amount: float
    payment_date: datetime
    payment_method: str
    notes: Optional[str] = None
    received_by: int

    class Config:
        from_attributes = True


class PaymentUpdate(BaseModel):
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


class PaymentRead(BaseModel):
    id: int
    sale_id: int
    bike_id: int
    customer_id: int
    total_amount: float
    paid_amount: float
    remaining_amount: float
    status: str
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    logs: List[PaymentLogRead] = []
    sale: Optional[SaleSummary] = None
    bike: Optional[BikeSummary] = None
    customer: Optional[CustomerSummary] = None

    class Config:
        from_attributes = True


# =========================
# FINANCE SCHEMAS
# =========================

class FinanceCreate(BaseModel):
    person_name: NonEmptyStr
    person_type: Literal["Bank", "Private Lender", "Finance Company", "Individual", "Other"]
    contact_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    status: Literal["active", "inactive"] = "active"
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return _normalize_email(v)


class FinanceUpdate(BaseModel):
    """Aggregates (total_amount_paid etc.) only move through transactions."""
    person_name: Optional[NonEmptyStr] = None
    person_type: Optional[
        Literal["Bank", "Private Lender", "Finance Company", "Individual", "Other"]
    ] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    status: Optional[Literal["active", "inactive"]] = None
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return _normalize_email(v)


class FinanceRead(BaseModel):
    id: int
    person_name: str
    person_type: str
    contact_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    total_amount_paid: float
    total_transactions: int
    last_payment_date: Optional[datetime] = None
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FinanceSummary(BaseModel):
    id: int
    person_name: str
    person_type: str

    class Config:
        from_attributes = True


class FinanceTransactionCreate(BaseModel):
    finance_id: int
    amount: float = Field(..., gt=0)
    payment_method: PaymentMethod
    purpose: NonEmptyStr
    payment_date: datetime
    description: Optional[str] = None
    reference_number: Optional[str] = None
    status: Literal["completed", "pending", "failed"] = "completed"


class FinanceTransactionRead(BaseModel):
    id: int
    finance_id: int
    amount: float
    payment_date: datetime
    payment_method: str
    purpose: str
    description: Optional[str] = None
    reference_number: Optional[str] = None
    paid_by: int
    status: str
    finance: Optional[FinanceSummary] = None

    class Config:
        from_attributes = True


class FinanceDetail(BaseModel):
    finance: FinanceRead
    transactions: List[FinanceTransactionRead]


# =========================
# EXPENSE / REVENUE SCHEMAS
# =========================

class ExpenseCreate(BaseModel):
    title: NonEmptyStr
    category: Literal[
        "Office Rent", "Utilities", "Marketing", "Maintenance", "Staff Salary",
        "Transportation", "Insurance", "Legal", "Other",
    ]
    amount: float = Field(..., gt=0)
    payment_method: PaymentMethod
    expense_date: datetime
    description: Optional[str] = None
    vendor_name: Optional[str] = None
    vendor_contact: Optional[str] = None
    vendor_address: Optional[str] = None
    is_recurring: bool = False
    recurring_period: Optional[Literal["monthly", "quarterly", "yearly"]] = None
    status: Literal["approved", "pending", "rejected"] = "approved"

    @model_validator(mode="after")
    def recurring_needs_period(self):
        if self.is_recurring and not self.recurring_period:
            raise ValueError("Recurring period is required for recurring expenses")
        return self


class ExpenseUpdate(BaseModel):
    title: Optional[NonEmptyStr] = None
    category: Optional[
        Literal[
            "Office Rent", "Utilities", "Marketing", "Maintenance", "Staff Salary",
            "Transportation", "Insurance", "Legal", "Other",
        ]
    ] = None
    amount: Optional[float] = Field(None, gt=0)
    payment_method: Optional[PaymentMethod] = None
    expense_date: Optional[datetime] = None
    description: Optional[str] = None
    vendor_name: Optional[str] = None
    vendor_contact: Optional[str] = None
    vendor_address: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurring_period: Optional[Literal["monthly", "quarterly", "yearly"]] = None
    status: Optional[Literal["approved", "pending", "rejected"]] = None


class ExpenseRead(BaseModel):
    id: int
    title: str
    category: str
    amount: float
    expense_date: datetime
    payment_method: str
    description: Optional[str] = None
    vendor_name: Optional[str] = None
    vendor_contact: Optional[str] = None
    vendor_address: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurring_period: Optional[str] = None
    added_by: int
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RevenueCreate(BaseModel):
    title: NonEmptyStr
    source: Literal[
        "Bike Sales", "Service", "Parts", "Accessories",
        "Insurance Commission", "Finance Commission", "Other",
    ]
    amount: float = Field(..., gt=0)
    payment_method: PaymentMethod
    revenue_date: datetime
    description: Optional[str] = None
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None
    is_from_sale: bool = False
    sale_id: Optional[int] = None
    status: Literal["confirmed", "pending", "cancelled"] = "confirmed"


class RevenueUpdate(BaseModel):
    title: Optional[NonEmptyStr] = None
    source: Optional[
        Literal[
            "Bike Sales", "Service", "Parts", "Accessories",
            "Insurance Commission", "Finance Commission", "Other",
        ]
    ] = None
    amount: Optional[float] = Field(None, gt=0)
    payment_method: Optional[PaymentMethod] = None
    revenue_date: Optional[datetime] = None
    description: Optional[str] = None
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None
    status: Optional[Literal["confirmed", "pending", "cancelled"]] = None


class RevenueRead(BaseModel):
    id: int
    title: str
    source: str
    amount: float
    revenue_date: datetime
    payment_method: str
    description: Optional[str] = None
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None
    is_from_sale: Optional[bool] = None
    sale_id: Optional[int] = None
    added_by: int
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

