# kamleen/auth.py
# Tokens are issued by the identity service; this API only verifies them.

from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from kamleen.core.config import settings
from kamleen.database.database import get_db
from kamleen.database.models import User, UserRole

ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)


# =====================================
# ✅ JWT Helpers
# =====================================
def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """Create a signed JWT (used by scripts and tests)."""
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Decode and verify a JWT token."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


# =====================================
# ✅ Current User Fetcher
# =====================================
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    try:
        user = db.query(User).filter(User.id == int(user_id)).first()
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


# =====================================
# ✅ Role-based Access Control
# =====================================
def require_role(required_role: UserRole):
    """Dependency to restrict access to users with a given role."""
    def checker(current_user: User = Depends(get_current_user)):
        if current_user.role != required_role:
            raise HTTPException(
                status_code=403,
                detail=f"Access forbidden: {required_role.value} role required"
            )
        return current_user
    return checker
