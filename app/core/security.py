# app/core/security.py
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, Field

from app.core.config import ALGORITHM, SECRET_KEY
from app.services.roles import get_hierarchy_for_role, build_permissions_for_role

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer()


class CurrentUser(BaseModel):
    """The authenticated caller, as supplied by the auth gate."""
    id: str
    role: str = "user"
    hierarchy: int = 5
    permissions: Dict[str, Any] = Field(default_factory=dict)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict) -> str:
    return jwt.encode(data.copy(), SECRET_KEY, algorithm=ALGORITHM)


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> CurrentUser:
    """
    Dependency: build the current user from the bearer token claims.
    `sub` is the user id; role/hierarchy/permissions fall back to the role tables.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.error(f"JWT decode error: {e}")
        raise credentials_exception

    user_id: Optional[str] = payload.get("sub")
    if user_id is None:
        logger.warning("Token missing 'sub' claim")
        raise credentials_exception

    role = payload.get("role") or "user"
    return CurrentUser(
        id=user_id,
        role=role,
        hierarchy=payload.get("hierarchy") or get_hierarchy_for_role(role),
        permissions=payload.get("permissions") or build_permissions_for_role(role),
    )


def require_hierarchy(level: int):
    """
    Dependency factory: only callers ranked `level` or higher (lower number) pass.
    """
    def checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.hierarchy > level:
            logger.warning(f"User {current_user.id} denied: hierarchy {current_user.hierarchy} > {level}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Insufficient authority level.",
            )
        return current_user

    return checker
