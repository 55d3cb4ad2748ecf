from sqlalchemy.orm import Session
from sqlalchemy import or_, desc, asc
from typing import Optional, List, Tuple
from insurance_crm.models.user import User, UserRole
from insurance_crm.utils.security import hash_pin


SORTABLE_FIELDS = {
    "id": User.id,
    "created_at": User.created_at,
    "username": User.username,
    "email": User.email,
    "last_login": User.last_login_at,
    "location_state": User.location_state,
}


class UserRepository:
    """Repository for the app_users table"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_username_or_email(self, identifier: str) -> Optional[User]:
        return self.db.query(User).filter(
            or_(User.username == identifier, User.email == identifier)
        ).first()

    def exists_username(self, username: str) -> bool:
        return self.db.query(User.id).filter(User.username == username).first() is not None

    def exists_email(self, email: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def get_all(
        self,
        skip: int = 0,
        limit: int = 50,
        role: Optional[str] = None,
        state: Optional[str] = None,
        search: Optional[str] = None,
        sort_field: str = "created_at",
        sort_desc: bool = True,
    ) -> Tuple[List[User], int]:
        """Get users with role/state filters and a free-text search"""
        query = self.db.query(User)

        if role:
            query = query.filter(User.user_role == UserRole.parse(role).value)
        if state:
            query = query.filter(User.location_state == state)
        if search:
            search_term = f"%{search}%"
            query = query.filter(
                User.username.ilike(search_term) |
                User.email.ilike(search_term) |
                User.first_name.ilike(search_term) |
                User.last_name.ilike(search_term)
            )

        total = query.count()
        column = SORTABLE_FIELDS.get(sort_field, User.created_at)
        users = query.order_by(desc(column) if sort_desc else asc(column), desc(User.id)).offset(skip).limit(limit).all()
        return users, total

    def create(
        self,
        username: str,
        email: str,
        pin: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        mobile_number: Optional[str] = None,
        location_city: Optional[str] = None,
        location_state: Optional[str] = None,
        role: UserRole = UserRole.USER,
        created_by: str = "SYSTEM",
    ) -> User:
        """Create a new user"""
        user = User(
            username=username,
            email=email,
            pin_hash=hash_pin(pin),
            first_name=first_name,
            last_name=last_name,
            mobile_number=mobile_number,
            location_city=location_city,
            location_state=location_state,
            user_role=role.value,
            is_active=True,
            is_locked=False,
            failed_login_attempts=0,
            created_by=created_by,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update(self, user: User, **kwargs) -> User:
        """Update non-None fields on a user"""
        for key, value in kwargs.items():
            if hasattr(user, key) and value is not None:
                setattr(user, key, value)
        self.db.commit()
        self.db.refresh(user)
        return user

    def set_pin(self, user: User, pin: str) -> User:
        user.pin_hash = hash_pin(pin)
        self.db.commit()
        self.db.refresh(user)
        return user

    def save(self, user: User) -> None:
        self.db.add(user)
        self.db.commit()

