from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from sqlalchemy.orm import Session
from materi.config import settings
from materi.db import get_db
from materi.models.core import User, UserRoleName
from materi.util.security import decode_token

auth_scheme = HTTPBearer(auto_error=False)

def _token_from(request: Request, creds: HTTPAuthorizationCredentials | None) -> str | None:
    # an explicit bearer header wins over the browser session cookie
    if creds:
        return creds.credentials
    return request.cookies.get(settings.COOKIE_NAME)

def require_auth(request: Request, creds: HTTPAuthorizationCredentials | None = Depends(auth_scheme)) -> str:
    token = _token_from(request, creds)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        return decode_token(token)["sub"]
    except (jwt.PyJWTError, KeyError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

def current_user(sub: str = Depends(require_auth), db: Session = Depends(get_db)) -> User:
    user = db.get(User, sub)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return user

def require_vendor(user: User = Depends(current_user)) -> User:
    if user.user_role != UserRoleName.VENDOR:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Vendor role required")
    return user
