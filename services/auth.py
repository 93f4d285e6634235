"""
Account credentials and bearer tokens for customers, vendors and admins.

Tokens carry the account id, email and role. The role claim lets the rate
limiter and the request logs name the caller without a database lookup;
endpoints still load the account and refuse tokens whose role is stale.
"""
from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from models.user import User, UserRole
from models.vendor import Vendor
from schemas.user import TokenData
from core.config import settings
import logging
import uuid

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
TOKEN_ISSUER = "cargomate"

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def password_matches(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)

def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a bearer token for an account."""
    issued_at = datetime.utcnow()
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": user.email,
        "user_id": user.id,
        "role": UserRole(user.role).value,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "iss": TOKEN_ISSUER,
    }
    logger.info(f"Issued {claims['role']} token for user {user.id}")
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=ALGORITHM)

def verify_token(token: str) -> Optional[TokenData]:
    """Decode a bearer token, or None when it is expired, forged or incomplete."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM], issuer=TOKEN_ISSUER)
    except JWTError as e:
        logger.warning(f"Rejected bearer token: {str(e)}")
        return None

    if not claims.get("sub") or not claims.get("user_id") or claims.get("role") not in {r.value for r in UserRole}:
        logger.warning("Bearer token is missing its account claims")
        return None

    return TokenData(email=claims["sub"], user_id=claims["user_id"], role=UserRole(claims["role"]))

def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Look up an active account by email and check its password."""
    email = email.lower().strip()
    user = get_user_by_email(db, email)

    if user is None or not user.is_active or not password_matches(password, user.password_hash):
        reason = "unknown email" if user is None else ("inactive" if not user.is_active else "bad password")
        logger.warning(f"Login refused for {email}: {reason}")
        return None

    logger.info(f"User {user.id} logged in as {user.role.value}")
    return user

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower().strip()).first()

def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()

def create_user(db: Session, email: str, password: str, name: str, role: UserRole,
                phone: Optional[str] = None, company_name: Optional[str] = None) -> User:
    """Create an account. Vendor accounts get their company profile in the same commit."""
    email = email.lower().strip()
    if get_user_by_email(db, email):
        logger.warning(f"Registration refused, {email} already has an account")
        raise ValueError("User with this email already exists")

    if role == UserRole.VENDOR and not company_name:
        raise ValueError("Vendors must provide a company name")

    now = datetime.utcnow()
    user = User(
        id=str(uuid.uuid4()),
        email=email,
        password_hash=hash_password(password),
        name=name,
        role=role,
        phone=phone,
        is_active=True,
        created_at=now,
        updated_at=now
    )
    db.add(user)
    if role == UserRole.VENDOR:
        db.add(Vendor(id=user.id, company_name=company_name, email=email, phone=phone, created_at=now))

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Could not store account {email}: {str(e)}")
        raise ValueError("User with this email already exists")

    db.refresh(user)
    logger.info(f"Created {role.value} account {user.id}")
    return user
