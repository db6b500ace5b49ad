from fastapi import Depends, HTTPException, status
from jose import JWTError
from sqlalchemy.orm import Session

from .core.enums import UserRole
from .core.security import decode_access_token, oauth2_scheme
from .database import get_db
from .models.user import User
from .schemas.user import TokenData


def get_current_user(
    token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
    except JWTError:
        raise credentials_exception
    token_data = TokenData.model_validate(payload)
    if not token_data.sub or not token_data.sub.isdigit():
        raise credentials_exception
    user = db.get(User, int(token_data.sub))
    if user is None:
        raise credentials_exception
    return user


def require_role(expected_role: UserRole):
    def _role_dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != expected_role:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role.")
        return current_user

    return _role_dependency
