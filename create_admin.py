"""
Create (or reset) an admin login
Usage: python create_admin.py <email> <password> [full name] [--role manager]
"""
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from willow.database import Base, SessionLocal, engine
from willow.models import AdminUser
from willow.security_utils import hash_password
from willow.shared.validators import validate_email

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 10


def create_admin(email: str, password: str, full_name: str = None, role: str = "owner") -> AdminUser:
    """Create the admin, or update the password and role if the e-mail exists"""
    email = validate_email(email)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()
    try:
        admin = db.query(AdminUser).filter(AdminUser.email == email).first()
        if admin:
            logger.info(f"Updating existing admin: {email}")
            admin.password_hash = hash_password(password)
            admin.role = role
            admin.is_active = True
            if full_name:
                admin.full_name = full_name
        else:
            admin = AdminUser(
                email=email, password_hash=hash_password(password), full_name=full_name, role=role
            )
            db.add(admin)
        db.commit()
        db.refresh(admin)
        return admin
    finally:
        db.close()


if __name__ == "__main__":
    args = sys.argv[1:]
    role = "owner"
    if "--role" in args:
        index = args.index("--role")
        role = args[index + 1] if index + 1 < len(args) else ""
        del args[index : index + 2]

    if len(args) < 2 or role not in ("owner", "manager"):
        logger.error("Usage: python create_admin.py <email> <password> [full name] [--role owner|manager]")
        sys.exit(1)

    try:
        admin = create_admin(args[0], args[1], " ".join(args[2:]) or None, role)
    except ValueError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    logger.info(f"✅ Admin ready: {admin.email} ({admin.role})")
