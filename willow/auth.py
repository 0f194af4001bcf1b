import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import AdminUser
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer()


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> AdminUser:
    """Resolve the admin user from the bearer token issued by /auth/login"""
    payload = verify_jwt_token(credentials.credentials)
    if not payload or payload.get("type") != "admin":
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    try:
        admin_id = int(payload.get("sub", ""))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid or expired token") from None

    admin = db.query(AdminUser).filter(AdminUser.id == admin_id).first()
    if not admin or not admin.is_active:
        logger.warning(f"⚠️ Token for unknown or inactive admin: {admin_id}")
        raise HTTPException(status_code=401, detail="User not found or inactive")

    return admin


def require_owner(admin: AdminUser = Depends(get_current_admin)) -> AdminUser:
    """Restrict an endpoint to the business owner role"""
    if admin.role != "owner":
        raise HTTPException(status_code=403, detail="Owner access required")
    return admin
