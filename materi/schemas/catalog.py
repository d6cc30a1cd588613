from pydantic import BaseModel, Field
from typing import Optional

from materi.schemas.common import Lenient

class SupplierIn(BaseModel):
    name: str = Field(min_length=1)
    company_name: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    payment_terms: Optional[str] = None
    active: bool = True

class SupplierPatch(BaseModel):
    name: Optional[str] = None
    company_name: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    payment_terms: Optional[str] = None
    active: Optional[bool] = None

class ProductIn(BaseModel):
    supplier_id: Optional[str] = None
    name: str = Field(min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    internal_code: Optional[str] = None
    unit_of_measure: str = "unit"
    base_price: Lenient = 0
    currency: Optional[str] = None
    image_url: Optional[str] = None
    active: bool = True

class ProductPatch(BaseModel):
    supplier_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    internal_code: Optional[str] = None
    unit_of_measure: Optional[str] = None
    base_price: Lenient = None
    currency: Optional[str] = None
    image_url: Optional[str] = None
    active: Optional[bool] = None
