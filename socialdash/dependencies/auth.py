# socialdash/dependencies/auth.py
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from socialdash.auth.schemas import SessionUser
from socialdash.auth.utils import SESSION_COOKIE_NAME, session_user_from_token

# tokens are issued by the hosted auth provider; tokenUrl only feeds the OpenAPI docs
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/v1/token", auto_error=False)


async def get_optional_user(request: Request, bearer: Optional[str] = Depends(oauth2_scheme)) -> Optional[SessionUser]:
    token = bearer or request.cookies.get(SESSION_COOKIE_NAME)
    return session_user_from_token(token)


async def get_current_user(user: Optional[SessionUser] = Depends(get_optional_user)) -> SessionUser:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="not authenticated")
    return user
