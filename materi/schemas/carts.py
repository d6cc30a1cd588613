from pydantic import BaseModel, ConfigDict
from typing import Optional

from materi.schemas.common import Lenient

class CartIn(BaseModel):
    global_margin_percent: Lenient = None

class CartItemIn(BaseModel):
    model_config = ConfigDict(extra="ignore")
    cart_id: Optional[str] = None
    product_id: Optional[str] = None
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    product_name: Optional[str] = None
    product_description: Optional[str] = None
    product_image_url: Optional[str] = None
    unit_of_measure: Optional[str] = None
    unit_cost_price: Lenient = None
    quantity: Lenient = None
    margin_percent: Lenient = None
    line_cost_total: Lenient = None
    unit_sale_price: Lenient = None
    line_sale_total: Lenient = None
    line_profit_amount: Lenient = None
