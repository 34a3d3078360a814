from collections.abc import Callable, Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from portal.api.permissions import Capability, has_capability
from portal.core.security import decode_token
from portal.db.session import SessionLocal
from portal.models.user import User

security = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def resolve_token_user(db: Session, token: str) -> User | None:
    """Return the active account a bearer token names, or None when the token does not check out."""
    try:
        user_id = decode_token(token).get("sub")
    except JWTError:
        return None
    if user_id is None:
        return None
    return db.get(User, user_id)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    user = resolve_token_user(db, credentials.credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")
    return user


def require_capability(capability: Capability) -> Callable[[User], User]:
    """Admit portal users whose role grants `capability`; everyone else gets 403."""

    def capability_checker(current_user: User = Depends(get_current_user)) -> User:
        if not has_capability(current_user.role, capability):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user

    return capability_checker
