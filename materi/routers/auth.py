from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging

from materi.config import settings
from materi.db import get_db
from materi.deps import current_user
from materi.schemas.auth import LoginIn, MeUpdate, RegisterIn, UserOut
from materi.util.security import cookie_kwargs, create_token, hash_pw, verify_pw
from materi.models.core import Supplier, User, UserRoleName

router = APIRouter(prefix="/auth", tags=["auth"])
log = logging.getLogger(__name__)


def _public(user: User, token: str | None = None) -> UserOut:
    return UserOut(
        id=user.id, name=user.name, email=user.email,
        user_role=user.user_role.value, supplier_id=user.supplier_id,
        access_token=token,
    )

def _issue(response: Response, user: User) -> str:
    token = create_token(user.id, user.user_role.value)
    response.set_cookie(settings.COOKIE_NAME, token, max_age=settings.JWT_EXP_MIN * 60, **cookie_kwargs())
    return token


@router.post("/register", response_model=UserOut)
def register(body: RegisterIn, response: Response, db: Session = Depends(get_db)):
    email = body.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(400, detail="A user with that email already exists")
    u = User(
        name=body.name,
        email=email,
        pass_hash=hash_pw(body.password),
        user_role=UserRoleName(body.user_role or UserRoleName.SUPPLIER.value),
    )
    db.add(u)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(400, detail="A user with that email already exists")
    db.refresh(u)
    log.info("registered %s as %s", u.id, u.user_role.value)
    return _public(u, _issue(response, u))


@router.post("/login", response_model=UserOut)
def login(body: LoginIn, response: Response, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email.strip().lower()).first()
    if not user or not verify_pw(user.pass_hash, body.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return _public(user, _issue(response, user))


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(current_user)):
    return _public(user)


@router.patch("/me", response_model=UserOut)
def update_me(body: MeUpdate, user: User = Depends(current_user), db: Session = Depends(get_db)):
    data = body.model_dump(exclude_unset=True)
    if data.get("supplier_id") and not db.get(Supplier, data["supplier_id"]):
        raise HTTPException(400, detail="supplier not found")
    if data.get("name"):
        user.name = data["name"]
    if data.get("user_role"):
        user.user_role = UserRoleName(data["user_role"])
    if "supplier_id" in data:
        user.supplier_id = data["supplier_id"]
    db.commit()
    db.refresh(user)
    return _public(user)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.COOKIE_NAME, **cookie_kwargs())
    return {"ok": True}
