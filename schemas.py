"""
Request Schemas for the Vendor Backend

Each request body is a pydantic model; FastAPI rejects a body that fails
these constraints before any collection is touched.
Stored documents use the lowercase entity name as collection:
- Vendor -> "vendor"
- Store -> "store"
- Product -> "product"
- Order -> "order"
- OrderNote -> "order_note"
"""

from typing import List, Literal, Optional
from urllib.parse import urlparse

from bson import ObjectId
from pydantic import BaseModel, EmailStr, Field, field_validator

ProductStatus = Literal["active", "inactive", "out_of_stock"]
OrderStatus = Literal["pending", "processing", "completed", "cancelled"]


def check_uri(value: Optional[str]) -> Optional[str]:
    # empty string clears the field
    if not value:
        return value
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("must be a valid URI")
    return value


def check_uris(values: List[str]) -> List[str]:
    for url in values:
        if not url:
            raise ValueError("must be a valid URI")
        check_uri(url)
    return values


# Auth
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# Stores
class SocialLinks(BaseModel):
    facebook: Optional[str] = None
    twitter: Optional[str] = None
    instagram: Optional[str] = None
    linkedin: Optional[str] = None
    website: Optional[str] = None

    @field_validator("facebook", "twitter", "instagram", "linkedin", "website")
    @classmethod
    def links_are_uris(cls, v):
        return check_uri(v)


class StoreIn(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, description="Store name")
    description: Optional[str] = Field(None, max_length=500)
    logo: Optional[str] = Field(None, description="Logo image URL")
    banner: Optional[str] = Field(None, description="Banner image URL")
    social_links: Optional[SocialLinks] = None

    @field_validator("logo", "banner")
    @classmethod
    def images_are_uris(cls, v):
        return check_uri(v)


# Products
class ProductIn(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    price: float = Field(..., ge=0, description="Unit price")
    stock: int = Field(..., ge=0, description="Units in stock")
    images: List[str] = Field(default_factory=list, description="Image URLs")
    category: Optional[str] = None
    status: ProductStatus = "active"

    @field_validator("images")
    @classmethod
    def images_are_uris(cls, v):
        return check_uris(v)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    images: Optional[List[str]] = None
    category: Optional[str] = None
    status: Optional[ProductStatus] = None

    @field_validator("images")
    @classmethod
    def images_are_uris(cls, v):
        if v is None:
            return v
        return check_uris(v)


# Orders
class OrderItemIn(BaseModel):
    product_id: str = Field(..., description="Referenced product id")
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Unit price at purchase time")

    @field_validator("product_id")
    @classmethod
    def product_id_is_object_id(cls, v):
        if not ObjectId.is_valid(v):
            raise ValueError("must be a valid id")
        return v


class OrderIn(BaseModel):
    customer_name: str = Field(..., min_length=1)
    customer_email: EmailStr
    items: List[OrderItemIn] = Field(..., min_length=1)

    @field_validator("customer_name")
    @classmethod
    def customer_name_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Customer name cannot be empty")
        return v


class StatusUpdate(BaseModel):
    status: OrderStatus


class NoteIn(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Note content cannot be empty")
        return v
