import logging
from typing import Optional
from sqlalchemy.orm import Session
from insurance_crm.config import settings
from insurance_crm.models.user import User
from insurance_crm.repositories.user_repo import UserRepository
from insurance_crm.utils.helpers import normalize_state_name
from insurance_crm.utils.security import verify_pin, create_access_token

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Login rejected; status_code is 400 for bad input, 401 for bad credentials"""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def valid_states() -> list:
    return [normalize_state_name(s) for s in settings.VALID_STATES]


class AuthService:
    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)

    def authenticate(self, identifier: str, pin: str) -> Optional[User]:
        """Check credentials and maintain the failed-attempt lockout counter"""
        user = self.user_repo.get_by_username_or_email(identifier)
        if not user:
            logger.warning(f"Authentication failed - user not found: {identifier}")
            return None

        if not user.is_account_active():
            logger.warning(f"Authentication failed - account inactive or locked: {identifier}")
            return None

        if not verify_pin(pin, user.pin_hash):
            user.register_failed_login(settings.MAX_FAILED_LOGIN_ATTEMPTS, settings.LOCKOUT_MINUTES)
            self.user_repo.save(user)
            logger.warning(f"Authentication failed - invalid PIN for user: {identifier} "
                           f"(attempt {user.failed_login_attempts})")
            return None

        user.register_successful_login()
        self.user_repo.save(user)
        logger.info(f"User authenticated: {user.username}")
        return user

    def login_web(self, identifier: str, pin: str) -> tuple[User, str]:
        user = self.authenticate(identifier, pin)
        if not user:
            raise AuthenticationError("Invalid credentials or account locked")
        token = create_access_token(data={"sub": str(user.id), "username": user.username, "channel": "web"})
        return user, token

    def login_mobile(self, identifier: str, pin: str, state: Optional[str] = None) -> tuple[User, str, str]:
        """
        Mobile login. When a state is supplied it must be one of the configured
        states and match the user's own state; otherwise the user's state is used.
        """
        requested_state = normalize_state_name(state)
        if requested_state and requested_state not in valid_states():
            raise AuthenticationError(f"Invalid state: {state}", status_code=400)

        user = self.authenticate(identifier, pin)
        if not user:
            raise AuthenticationError("Invalid credentials or account not found in this state")

        user_state = normalize_state_name(user.location_state) or normalize_state_name(settings.DEFAULT_STATE)
        if requested_state and requested_state != user_state:
            logger.warning(f"State mismatch for {user.username}: user state {user_state}, requested {requested_state}")
            raise AuthenticationError("Invalid credentials or account not found in this state")

        token = create_access_token(data={
            "sub": str(user.id),
            "username": user.username,
            "state": user_state,
            "channel": "mobile",
        })
        return user, token, user_state
