from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.models.member import Member

bearer_scheme = HTTPBearer(auto_error=False)


def _member_for_subject(db: Session, subject: str) -> Member | None:
    """Tokens name the member either by primary key or by e-mail address."""

    if subject.isdigit():
        member = db.get(Member, int(subject))
        if member is not None:
            return member
    return db.query(Member).filter(Member.email == subject).first()


def get_current_member(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Member:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        payload = jwt.decode(credentials.credentials, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if subject is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    member = _member_for_subject(db, str(subject))
    if member is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown member")
    if not member.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Member has been deactivated")
    return member


def require_officer(member: Member = Depends(get_current_member)) -> Member:
    if not member.is_officer:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only organization officers can perform this action")
    return member
