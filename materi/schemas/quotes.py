from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Optional, Literal

from materi.schemas.common import Lenient

QuoteStatusLiteral = Literal["Draft", "Sent", "Accepted", "Rejected"]

class LineItemIn(BaseModel):
    # client-computed totals are accepted for compatibility and checked, never trusted
    model_config = ConfigDict(extra="ignore")
    id: Optional[str] = None
    quote_id: Optional[str] = None
    product_id: Optional[str] = None
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    product_name: Optional[str] = None
    product_description_snapshot: Optional[str] = None
    unit_of_measure: Optional[str] = None
    unit_cost_price: Lenient = None
    quantity: Lenient = None
    margin_percent: Lenient = None
    line_cost_total: Lenient = None
    unit_sale_price: Lenient = None
    line_sale_total: Lenient = None
    line_profit_amount: Lenient = None
    # editors send either spelling
    deleted: bool = Field(False, validation_alias=AliasChoices("deleted", "isDeleted"))

class QuoteFields(BaseModel):
    model_config = ConfigDict(extra="ignore")
    customer_name: Optional[str] = None
    customer_company: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    status: Optional[QuoteStatusLiteral] = None
    global_margin_percent: Lenient = None
    notes: Optional[str] = None
    # immutable once stamped; accepted only so clients can echo them back
    quote_number: Optional[str] = None
    quote_seq_id: Optional[int] = None

class QuoteIn(QuoteFields):
    line_items: list[LineItemIn] = []

class QuoteSaveIn(QuoteFields):
    line_items: list[LineItemIn] = []

class NextNumberOut(BaseModel):
    seqId: int
    quote_number: str
