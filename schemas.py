"""
Database Schemas for the plantNet nursery marketplace

Request models for the MongoDB collections:
- Plant -> "plants"
- Order -> "orders"
User documents are assembled in main.save_user.

Field names follow the JSON the storefront client sends (plantId, transactionId, ...).
"""
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, EmailStr
from typing import Any, Optional, Literal

# -----------------------------
# Users
# -----------------------------
class RoleUpdate(BaseModel):
    role: Literal["customer", "seller", "admin"]

class TokenPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: EmailStr

# -----------------------------
# Inventory
# -----------------------------
class Seller(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None

class Plant(BaseModel):
    # only the seller is checked, everything else is stored as submitted
    model_config = ConfigDict(extra="allow")

    name: Optional[Any] = None
    description: Optional[Any] = None
    category: Optional[Any] = None
    price: Optional[Any] = None
    quantity: Optional[Any] = None
    image: Optional[Any] = None
    seller: Seller

class QuantityUpdate(BaseModel):
    quantityToUpdate: int
    status: Literal["increase", "decrease"] = "decrease"

# -----------------------------
# Orders / Checkout
# -----------------------------
class Customer(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[Any] = None
    email: Optional[Any] = None
    image: Optional[Any] = None

class Order(BaseModel):
    # inserted unconditionally, fields are kept as the client sent them
    model_config = ConfigDict(extra="allow")

    plantId: Optional[Any] = None
    quantity: Optional[Any] = None
    price: Optional[Any] = None
    customer: Optional[Customer] = None
    seller: Optional[Any] = None
    address: Optional[Any] = None
    status: Any = "Pending"
    transactionId: Optional[Any] = None

class StatusUpdate(BaseModel):
    status: str

class PaymentIntentRequest(BaseModel):
    plantId: str
    quantity: int = Field(..., ge=1)
