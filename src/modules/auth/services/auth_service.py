import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from config import Settings
from exceptions import ConflictError, InvalidRequestError, NotFoundError
from modules.auth.models.user import User, UserRole

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_access_token(user: User, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    """Signs a staff access token carrying the user id and the role it was issued for."""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": str(user.id), "role": user.role.value, "exp": expire}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


class StaffAccountService:
    """
    Sign-in and administration of staff accounts (admins, case managers and
    viewers). Clients signing documents never hold an account; they are
    identified by their signature link alone.
    """

    def __init__(self, session: Session, settings: Settings):
        self.db = session
        self.settings = settings

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self._find_by_email(email)
        if user is None or not user.is_active:
            return None
        if not verify_password(password, user.password_hash):
            logger.info("Failed sign-in for user %s", user.id)
            return None
        return user

    def resolve_token(self, token: str) -> Optional[User]:
        """Returns the active user a bearer token was issued to, or None."""
        try:
            payload = jwt.decode(token, self.settings.SECRET_KEY, algorithms=[self.settings.ALGORITHM])
            user_id = int(payload["sub"])
        except (JWTError, KeyError, TypeError, ValueError):
            return None

        user = self.db.get(User, user_id)
        if user is None or not user.is_active:
            return None
        # tokens issued before a role change are no longer honoured
        if payload.get("role") != user.role.value:
            return None
        return user

    def list_users(
        self,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[User], int]:
        query = self.db.query(User)
        if role is not None:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        total = query.count()
        return query.order_by(User.id).offset(skip).limit(limit).all(), total

    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def create_user(self, name: str, email: str, password: str, role: UserRole) -> User:
        email = normalize_email(email)
        if self._find_by_email(email) is not None:
            raise ConflictError("Email is already registered")

        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
            is_active=True,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Staff account %s created with role %s", user.id, role.value)
        return user

    def update_user(self, user_id: int, changes: Dict[str, Any]) -> User:
        user = self.get_user(user_id)
        changes = {field: value for field, value in changes.items() if value is not None}

        if changes.get("email"):
            changes["email"] = normalize_email(changes["email"])
            if changes["email"] != user.email and self._find_by_email(changes["email"]) is not None:
                raise ConflictError("Email is already registered")
        if "password" in changes:
            changes["password_hash"] = hash_password(changes.pop("password"))

        for field, value in changes.items():
            setattr(user, field, value)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Staff account %s updated (%s)", user.id, ", ".join(sorted(changes)))
        return user

    def delete_user(self, user_id: int, acting_user: User) -> None:
        user = self.get_user(user_id)
        if user.id == acting_user.id:
            raise InvalidRequestError("You cannot delete your own account")
        self.db.delete(user)
        self.db.commit()
        logger.info("Staff account %s deleted by %s", user_id, acting_user.id)

    def _find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()
