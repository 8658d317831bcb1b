"""
Database Schemas for the storefront

Each Pydantic document model maps to one MongoDB collection:

- User -> "users"
- Category -> "categories"
- Product -> "products"
- Order -> "orders"

Request bodies are modelled below the documents. Their fields are optional
so the services can answer with a field-specific message instead of a
generic 422.
"""
from enum import Enum
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

CUSTOMER = 0
ADMIN = 1


class OrderStatus(str, Enum):
    NOT_PROCESS = "Not Process"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Email address, unique")
    password: str = Field(..., description="Bcrypt hash")
    phone: str = Field(..., description="Phone number")
    address: str = Field(..., description="Free-text address")
    answer: str = Field(..., description="Security answer used for password reset")
    role: int = Field(CUSTOMER, description="0 customer, 1 admin")


class Category(BaseModel):
    name: str = Field(..., description="Category name, unique")
    slug: str = Field(..., description="Lowercase hyphenated name")


class Photo(BaseModel):
    data: bytes
    contentType: str


class Product(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    slug: str
    description: str
    price: float = Field(..., ge=0, description="Unit price")
    category: ObjectId = Field(..., description="Category reference")
    quantity: int = Field(..., ge=0)
    shipping: bool = Field(False, description="Whether the product ships")
    photo: Optional[Photo] = None


class Order(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    products: List[ObjectId] = Field(default_factory=list)
    payment: dict = Field(default_factory=dict, description="Gateway transaction outcome")
    buyer: ObjectId
    status: OrderStatus = OrderStatus.NOT_PROCESS

    def to_document(self) -> dict:
        doc = self.model_dump()
        doc["status"] = self.status.value
        return doc


# Requests

class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    answer: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None
    answer: Optional[str] = None
    newPassword: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class CategoryRequest(BaseModel):
    name: Optional[str] = None


class FilterRequest(BaseModel):
    checked: List[str] = Field(default_factory=list, description="Category ids")
    radio: List[float] = Field(default_factory=list, description="[min, max] price")


class CartItem(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    price: float = 0


class PaymentRequest(BaseModel):
    nonce: Optional[str] = None
    cart: List[CartItem] = Field(default_factory=list)


class OrderStatusUpdate(BaseModel):
    status: str


class Principal(BaseModel):
    """The signed-in caller decoded from the JWT."""
    id: str = Field(..., alias="_id")

    model_config = ConfigDict(populate_by_name=True)


class ProductForm(BaseModel):
    """Multipart fields of the create/update product forms, as sent."""
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[str] = None
    category: Optional[str] = None
    quantity: Optional[str] = None
    shipping: Optional[str] = None
