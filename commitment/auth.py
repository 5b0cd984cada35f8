import hmac
from typing import Optional
from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from commitment import config
from commitment.database import get_db
from commitment.models import Member
from commitment.repositories.member_repository import MemberRepository

# Both the cron job and members send "Authorization: Bearer <token>"
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


async def verify_cron_secret(credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)):
    """Verify the shared secret sent by the external scheduler"""
    secret = config.CRON_SECRET
    if not secret or not credentials or not hmac.compare_digest(credentials.credentials, secret):
        raise _unauthorized()
    return credentials.credentials


async def get_current_member(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_db)
) -> Member:
    """Resolve the calling member from their session token"""
    if not credentials or not credentials.credentials:
        raise _unauthorized()
    member = MemberRepository.get_by_token(db, credentials.credentials)
    if not member:
        raise _unauthorized()
    return member
