import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from ..auth import get_current_admin
from ..database import get_db
from ..models import AdminUser
from ..rate_limiter import create_rate_limiter
from ..security_utils import create_jwt_token, verify_password
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

rate_limit_login = create_rate_limiter(limit=10, window_seconds=900, key_prefix="admin_login")


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return validate_email(v)


class AdminResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    role: str

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    admin: AdminResponse


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_login),
):
    """Exchange admin credentials for a bearer token"""
    admin = db.query(AdminUser).filter(AdminUser.email == data.email).first()
    if not admin or not admin.is_active or not verify_password(data.password, admin.password_hash):
        logger.warning(f"🚫 Failed admin login for {data.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    admin.last_login_at = datetime.utcnow()
    db.commit()

    token = create_jwt_token({"sub": str(admin.id), "type": "admin", "role": admin.role})
    logger.info(f"✅ Admin logged in: {admin.email}")
    return LoginResponse(access_token=token, admin=AdminResponse.model_validate(admin))


@router.get("/me", response_model=AdminResponse)
async def me(admin: AdminUser = Depends(get_current_admin)):
    return admin
