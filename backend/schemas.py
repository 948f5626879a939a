import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, validator

from models import ORDER_STATUSES, ORDER_TYPES

PHONE_RE = re.compile(r"^\d{10}$")

PHONE_ERROR = "Phone must be a 10-digit number"
STATUS_ERROR = f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}"
ORDER_TYPE_ERROR = f"Invalid order type. Must be one of: {', '.join(ORDER_TYPES)}"


def is_valid_phone(phone) -> bool:
    return isinstance(phone, str) and PHONE_RE.match(phone) is not None


def _required_text(v: Optional[str], field: str, max_length: int) -> str:
    if v is None or len(v.strip()) == 0:
        raise ValueError(f"{field} cannot be empty")
    if len(v) > max_length:
        raise ValueError(f"{field} cannot exceed {max_length} characters")
    return v.strip()


def _positive_price(v: float) -> float:
    if v <= 0:
        raise ValueError("Price must be a positive number")
    if v > 1000000:
        raise ValueError("Price is too high")
    return round(v, 2)


class CategoryCreate(BaseModel):
    name: str
    description: Optional[str] = None

    @validator("name")
    def validate_name(cls, v: str) -> str:
        return _required_text(v, "Category name", 100)


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    item_count: int = 0


class MenuItemCreate(BaseModel):
    category_id: int
    name: str
    description: Optional[str] = None
    price: float
    is_available: bool = True

    @validator("name")
    def validate_name(cls, v: str) -> str:
        return _required_text(v, "Menu item name", 100)

    @validator("price")
    def validate_price(cls, v: float) -> float:
        return _positive_price(v)


class MenuItemUpdate(BaseModel):
    category_id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    is_available: Optional[bool] = None

    @validator("name")
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _required_text(v, "Menu item name", 100)

    @validator("price")
    def validate_price(cls, v: Optional[float]) -> Optional[float]:
        if v is None:
            return v
        return _positive_price(v)


class MenuItemResponse(BaseModel):
    id: int
    category_id: int
    category_name: Optional[str] = None
    name: str
    description: Optional[str] = None
    price: float
    is_available: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CustomerCreate(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None

    @validator("name")
    def validate_name(cls, v: str) -> str:
        return _required_text(v, "Customer name", 100)

    @validator("phone")
    def validate_phone(cls, v: str) -> str:
        if not is_valid_phone(v):
            raise ValueError(PHONE_ERROR)
        return v


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @validator("name")
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _required_text(v, "Customer name", 100)

    @validator("phone")
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_valid_phone(v):
            raise ValueError(PHONE_ERROR)
        return v


class CustomerResponse(BaseModel):
    id: int
    name: str
    phone: str
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    order_count: int = 0
    total_spent: float = 0
    last_order_date: Optional[datetime] = None


class OrderItemCreate(BaseModel):
    menu_item_id: int
    quantity: int

    @validator("quantity")
    def validate_quantity(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Quantity must be greater than 0")
        return v


class OrderItemResponse(BaseModel):
    id: int
    order_id: int
    menu_item_id: int
    quantity: int
    unit_price: float
    subtotal: float
    item_name: Optional[str] = None
    item_description: Optional[str] = None
    category_name: Optional[str] = None


class OrderCreate(BaseModel):
    customer_id: int
    order_type: str
    items: List[OrderItemCreate]
    notes: Optional[str] = None

    @validator("order_type")
    def validate_order_type(cls, v: str) -> str:
        if v not in ORDER_TYPES:
            raise ValueError(ORDER_TYPE_ERROR)
        return v

    @validator("items")
    def validate_items(cls, v: List[OrderItemCreate]) -> List[OrderItemCreate]:
        if not v:
            raise ValueError("Order must contain at least one item")
        return v


class OrderStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None

    @validator("status")
    def validate_status(cls, v: str) -> str:
        if v not in ORDER_STATUSES:
            raise ValueError(STATUS_ERROR)
        return v


class OrderResponse(BaseModel):
    id: int
    customer_id: int
    order_date: Optional[datetime] = None
    total_amount: float
    status: str
    order_type: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    item_count: Optional[int] = None
    items: Optional[List[OrderItemResponse]] = None
