"""Row and request models for the finance tables."""

from typing import Literal, Optional
from pydantic import BaseModel, Field

EntryType = Literal["income", "expense"]
BudgetPeriod = Literal["monthly", "weekly", "yearly"]


class CategoryRef(BaseModel):
    """Category columns embedded in transaction and budget rows."""
    id: str
    name: str
    color: str
    icon: Optional[str] = None


class Transaction(BaseModel):
    id: str
    user_id: str
    amount: float
    type: EntryType
    category_id: Optional[str] = None
    description: str
    date: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    categories: Optional[CategoryRef] = None


class TransactionCreate(BaseModel):
    """Request to record a transaction."""
    amount: float = Field(..., gt=0)
    type: EntryType
    category_id: str
    description: str = Field(default="", max_length=500)
    date: str = Field(..., description="ISO date of the transaction")


class TransactionUpdate(BaseModel):
    amount: Optional[float] = Field(default=None, gt=0)
    type: Optional[EntryType] = None
    category_id: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=500)
    date: Optional[str] = None


class Category(BaseModel):
    id: str
    name: str
    type: EntryType
    color: str
    icon: Optional[str] = None
    user_id: str
    created_at: Optional[str] = None


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    type: EntryType
    color: str = Field(default="#3B82F6", pattern=r"^#[0-9A-Fa-f]{6}$")
    icon: str = "circle"


class Budget(BaseModel):
    id: str
    user_id: str
    category_id: str
    amount: float
    period: BudgetPeriod
    start_date: str
    end_date: Optional[str] = None
    created_at: Optional[str] = None
    categories: Optional[CategoryRef] = None


class BudgetCreate(BaseModel):
    category_id: str
    amount: float = Field(..., gt=0)
    period: BudgetPeriod = "monthly"
    start_date: str
    end_date: Optional[str] = None


class Asset(BaseModel):
    id: str
    user_id: str
    name: str
    type: str
    balance: float
    note: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AssetCreate(BaseModel):
    """Request to register an asset (bank account, cash, brokerage...)."""
    name: str = Field(..., min_length=1, max_length=100)
    type: str = Field(..., min_length=1, max_length=50)
    balance: float = 0
    note: Optional[str] = None


class AssetUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[str] = None
    balance: Optional[float] = None
    note: Optional[str] = None


class Credentials(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)


class SignUpRequest(Credentials):
    full_name: str = Field(default="", max_length=100)


class User(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    created_at: Optional[str] = None
