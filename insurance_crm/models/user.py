"""
User model mapping to the 'app_users' table.
Field agents (mobile users) own open customers through customers.assigned_to.
"""
from datetime import timedelta
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from insurance_crm.database import Base
from insurance_crm.utils.helpers import utcnow
import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    MANAGER = "manager"
    TEAM_LEAD = "team_lead"
    USER = "user"
    MOBILE_USER = "mobile_user"

    @classmethod
    def parse(cls, value) -> "UserRole":
        """Accepts both 'MOBILE_USER' and 'mobile_user'; unknown values fall back to USER"""
        if isinstance(value, cls):
            return value
        if not value:
            return cls.USER
        normalized = str(value).strip().lower()
        for role in cls:
            if role.value == normalized:
                return role
        return cls.USER

    @property
    def is_admin(self) -> bool:
        return self is UserRole.ADMIN

    @property
    def is_supervisor(self) -> bool:
        return self in (UserRole.ADMIN, UserRole.SUPERVISOR)


class User(Base):
    __tablename__ = "app_users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    pin_hash = Column(String, nullable=False)

    # Personal information
    first_name = Column(String)
    last_name = Column(String)
    mobile_number = Column(String)

    # Location
    location_city = Column(String)
    location_state = Column(String, index=True)

    user_role = Column(String, nullable=False, default=UserRole.USER.value)

    # Account status
    is_active = Column(Boolean, default=True)
    is_locked = Column(Boolean, default=False)
    failed_login_attempts = Column(Integer, default=0)
    locked_until = Column(DateTime)
    last_login_at = Column(DateTime)

    created_by = Column(String)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def role(self) -> UserRole:
        return UserRole.parse(self.user_role)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def is_account_locked(self, now=None) -> bool:
        if not self.is_locked:
            return False
        if self.locked_until is None:
            return True
        return (now or utcnow()) < self.locked_until

    def is_account_active(self, now=None) -> bool:
        return bool(self.is_active) and not self.is_account_locked(now)

    def register_failed_login(self, max_attempts: int, lockout_minutes: int) -> None:
        self.failed_login_attempts = (self.failed_login_attempts or 0) + 1
        if self.failed_login_attempts >= max_attempts:
            self.is_locked = True
            self.locked_until = utcnow() + timedelta(minutes=lockout_minutes)

    def register_successful_login(self) -> None:
        self.failed_login_attempts = 0
        self.is_locked = False
        self.locked_until = None
        self.last_login_at = utcnow()
