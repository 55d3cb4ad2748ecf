from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey
from insurance_crm.database import Base
from insurance_crm.utils.helpers import utcnow
import enum


class CustomerStatus(str, enum.Enum):
    """Work-queue status of a renewal lead"""
    ACTIVE = "active"  # Closed - contacted and policy taken
    RENEWED = "renewed"  # Closed - policy renewed
    NOT_INTERESTED = "not_interested"  # Closed
    NOT_REACHABLE = "not_reachable"  # Open
    FOLLOW_UP = "follow_up"  # Open, optionally snoozed until reminder_date
    NOT_STARTED = "not_started"  # Open, default for new leads only

    @property
    def is_closed(self) -> bool:
        return self in CLOSED_STATUSES

    @property
    def is_open(self) -> bool:
        return not self.is_closed

    @classmethod
    def parse(cls, value):
        """Return the member for a stored value; unknown or missing values read as NOT_STARTED"""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NOT_STARTED
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.NOT_STARTED


CLOSED_STATUSES = frozenset({CustomerStatus.ACTIVE, CustomerStatus.RENEWED, CustomerStatus.NOT_INTERESTED})


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)

    # Basic info
    first_name = Column(String)
    mobile_number = Column(String, index=True)
    email = Column(String)

    # Address
    address = Column(Text)
    city = Column(String)
    state = Column(String, index=True)
    pincode = Column(String)

    # Vehicle / policy
    registration_number = Column(String)
    vehicle_make = Column(String)
    vehicle_model = Column(String)
    previous_insurer = Column(String)
    previous_policy_number = Column(String)

    # Status lifecycle. is_closed is a cached copy of is_closed(customer_status)
    # and is only ever written together with customer_status.
    customer_status = Column(String, default=CustomerStatus.NOT_STARTED.value, index=True)
    is_closed = Column(Boolean, default=False, index=True)
    reminder_date = Column(DateTime)
    last_status_updated = Column(DateTime, default=utcnow)
    status_updated_by = Column(Integer, ForeignKey("app_users.id"), index=True)

    # Assignment
    assigned_to = Column(Integer, ForeignKey("app_users.id"), index=True)

    # Metadata
    notes = Column(Text)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
