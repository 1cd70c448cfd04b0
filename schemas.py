"""
API Schemas for the Storefront

Each Pydantic model is the wire contract for one entity: the *In models
validate request bodies, the *Out models shape responses. JSON field names
are camelCase (isDefault, createdAt, ...); snake_case is accepted on input too.
"""
import math
from datetime import datetime
from typing import List, Optional

from pydantic import (
    AnyHttpUrl,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from models import AddressType, OrderStatus, Role

_EMAIL = TypeAdapter(EmailStr)
_HTTP_URL = TypeAdapter(AnyHttpUrl)


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _require_text(value: str, message: str) -> str:
    if not value or not value.strip():
        raise ValueError(message)
    return value


# ----------------------- Auth -----------------------
class SignupIn(ApiModel):
    name: str = Field(..., description="Display name")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72, description="Plaintext password, hashed with bcrypt")

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _require_text(v, "Name is required")


class LoginIn(ApiModel):
    email: EmailStr
    password: str


class UserOut(ApiModel):
    id: str
    email: str
    name: Optional[str] = None
    role: Role


class TokenOut(ApiModel):
    token: str
    user: UserOut


# ----------------------- Products -----------------------
class ProductIn(ApiModel):
    name: str
    description: str
    price: float = Field(..., description="Price in base currency units")
    image: str = Field(..., description="Image URL")
    category: str
    stock: int = Field(..., description="Units on hand (informational)")

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _require_text(v, "Name is required")

    @field_validator("description")
    @classmethod
    def _description(cls, v: str) -> str:
        return _require_text(v, "Description is required")

    @field_validator("price")
    @classmethod
    def _price(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("Price must be a finite number")
        if v <= 0:
            raise ValueError("Price must be positive")
        return v

    @field_validator("image")
    @classmethod
    def _image(cls, v: str) -> str:
        try:
            _HTTP_URL.validate_python(v)
        except ValidationError:
            raise ValueError("Image must be a valid URL")
        return v

    @field_validator("category")
    @classmethod
    def _category(cls, v: str) -> str:
        return _require_text(v, "Category is required")

    @field_validator("stock")
    @classmethod
    def _stock(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock must be non-negative")
        return v


class ProductOut(ApiModel):
    id: str
    name: str
    description: str
    price: float
    image: str
    category: str
    stock: int
    created_at: datetime
    updated_at: datetime


# ----------------------- Cart -----------------------
def _positive_quantity(v: int) -> int:
    if v < 1:
        raise ValueError("Quantity must be at least 1")
    return v


class CartItemIn(ApiModel):
    product_id: str
    quantity: int = 1

    @field_validator("quantity")
    @classmethod
    def _quantity(cls, v: int) -> int:
        return _positive_quantity(v)


class CartItemUpdate(ApiModel):
    quantity: int

    @field_validator("quantity")
    @classmethod
    def _quantity(cls, v: int) -> int:
        return _positive_quantity(v)


class CartItemOut(ApiModel):
    id: str
    user_id: str
    product_id: str
    quantity: int
    created_at: datetime
    product: ProductOut


# ----------------------- Addresses -----------------------
class AddressIn(ApiModel):
    type: AddressType
    full_name: str
    phone_number: str
    street: str
    city: str
    state: str
    postal_code: str
    country: str = "India"
    is_default: bool = False

    @field_validator("full_name")
    @classmethod
    def _full_name(cls, v: str) -> str:
        return _require_text(v, "Full name is required")

    @field_validator("phone_number")
    @classmethod
    def _phone(cls, v: str) -> str:
        if len(v) < 10:
            raise ValueError("Phone number must be at least 10 digits")
        return v

    @field_validator("street")
    @classmethod
    def _street(cls, v: str) -> str:
        return _require_text(v, "Street address is required")

    @field_validator("city")
    @classmethod
    def _city(cls, v: str) -> str:
        return _require_text(v, "City is required")

    @field_validator("state")
    @classmethod
    def _state(cls, v: str) -> str:
        return _require_text(v, "State is required")

    @field_validator("postal_code")
    @classmethod
    def _postal_code(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Postal code must be at least 6 digits")
        return v


class AddressOut(ApiModel):
    id: str
    user_id: str
    type: AddressType
    full_name: str
    phone_number: str
    street: str
    city: str
    state: str
    postal_code: str
    country: str
    is_default: bool
    created_at: datetime
    updated_at: datetime


# ----------------------- Orders -----------------------
class OrderIn(ApiModel):
    # Optional here so a missing id gets the "Shipping address is required" message
    shipping_address_id: Optional[str] = None


class OrderItemOut(ApiModel):
    id: str
    order_id: str
    product_id: str
    quantity: int
    price: float
    product: ProductOut


class OrderOut(ApiModel):
    id: str
    user_id: str
    status: OrderStatus
    total: float
    shipping_address_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    order_items: List[OrderItemOut] = []


# ----------------------- Profile -----------------------
class ProfileIn(ApiModel):
    name: str
    email: str

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _require_text(v, "Name is required")

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        try:
            return _EMAIL.validate_python(v)
        except ValidationError:
            raise ValueError("Invalid email address")


class ProfileOut(ApiModel):
    id: str
    name: Optional[str] = None
    email: str
    image: Optional[str] = None
    created_at: datetime


class MessageOut(ApiModel):
    message: str
