from pydantic import BaseModel, Field
from typing import Optional, Literal

UserRoleLiteral = Literal["Vendor", "Supplier"]

class RegisterIn(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    user_role: Optional[UserRoleLiteral] = None

class LoginIn(BaseModel):
    email: str
    password: str

class MeUpdate(BaseModel):
    name: Optional[str] = None
    user_role: Optional[UserRoleLiteral] = None
    supplier_id: Optional[str] = None

class UserOut(BaseModel):
    id: str
    name: str
    email: str
    user_role: UserRoleLiteral
    supplier_id: Optional[str] = None
    access_token: Optional[str] = None
