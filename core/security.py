from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from core.actor import ActorContext
from core.database import get_db
from models.user import User
from services.auth_service import AuthService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Authenticated user from the bearer header, or the login cookie."""
    token = token or request.cookies.get("access_token")
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return AuthService.get_user_from_token(token, db)


def get_current_actor(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> ActorContext:
    return AuthService.build_actor(user, db)
