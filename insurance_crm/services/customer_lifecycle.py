"""
Customer status and assignment lifecycle.

Rules:
    - active, renewed and not_interested close a customer; closed customers
      are always unassigned.
    - not_reachable and follow_up keep the customer in the owner's queue.
    - not_started is the default state and can never be set explicitly.
    - follow_up customers with a future reminder are hidden from the open
      queue until the reminder is due.
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from insurance_crm.models.customer import Customer, CustomerStatus
from insurance_crm.repositories.customer_repo import CustomerRepository
from insurance_crm.utils.helpers import utcnow, to_naive_utc, page_to_offset, total_pages

logger = logging.getLogger(__name__)

ASSIGNABLE_STATUSES = (
    CustomerStatus.ACTIVE,
    CustomerStatus.RENEWED,
    CustomerStatus.NOT_INTERESTED,
    CustomerStatus.NOT_REACHABLE,
    CustomerStatus.FOLLOW_UP,
)

ACTION_CLOSED = "Customer completed and unassigned from user"
ACTION_OPEN = "Customer remains assigned to user"


def is_closed(status: Union[CustomerStatus, str, None]) -> bool:
    return CustomerStatus.parse(status).is_closed


def is_open(status: Union[CustomerStatus, str, None]) -> bool:
    return not is_closed(status)


def closed_statuses() -> List[str]:
    return [s.value for s in CustomerStatus if is_closed(s)]


def open_statuses() -> List[str]:
    return [s.value for s in ASSIGNABLE_STATUSES if is_open(s)]


class LifecycleError(str, enum.Enum):
    INVALID_STATUS = "invalid_status"
    INVALID_REMINDER_DATE = "invalid_reminder_date"
    NOT_FOUND_OR_NOT_OWNED = "not_found_or_not_owned"


ERROR_MESSAGES = {
    LifecycleError.INVALID_STATUS: "Invalid status. Must be one of: " + ", ".join(s.value for s in ASSIGNABLE_STATUSES),
    LifecycleError.INVALID_REMINDER_DATE: "Reminder date must be a valid future date for follow-up status",
    LifecycleError.NOT_FOUND_OR_NOT_OWNED: "Customer not found or not assigned to this user",
}


@dataclass
class StatusUpdateResult:
    success: bool
    customer_id: int
    status: Optional[CustomerStatus] = None
    is_closed: bool = False
    reminder_date: Optional[datetime] = None
    action_taken: Optional[str] = None
    error: Optional[LifecycleError] = None

    @property
    def message(self) -> Optional[str]:
        return ERROR_MESSAGES.get(self.error) if self.error else None


@dataclass
class CustomerPage:
    customers: List[Customer]
    page: int
    size: int
    total: int
    total_pages: int = field(init=False)

    def __post_init__(self):
        self.total_pages = total_pages(self.total, self.size)


def parse_assignable_status(value) -> Optional[CustomerStatus]:
    """Return the status for an externally supplied value, or None if it cannot be set"""
    if isinstance(value, CustomerStatus):
        status = value
    else:
        try:
            status = CustomerStatus(str(value).strip().lower())
        except ValueError:
            return None
    return status if status in ASSIGNABLE_STATUSES else None


class CustomerLifecycleService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.repo = CustomerRepository(db)
        self.clock = clock

    def _validate(self, customer_id: int, status, reminder_date: Optional[datetime]) -> Tuple[Optional[CustomerStatus], Optional[datetime], Optional[StatusUpdateResult]]:
        parsed = parse_assignable_status(status)
        if parsed is None:
            logger.warning(f"Rejected status '{status}' for customer {customer_id}")
            return None, None, StatusUpdateResult(False, customer_id, error=LifecycleError.INVALID_STATUS)

        reminder = to_naive_utc(reminder_date)
        if parsed is CustomerStatus.FOLLOW_UP and reminder is not None and reminder <= self.clock():
            logger.warning(f"Rejected reminder date {reminder} for customer {customer_id}: not in the future")
            return parsed, reminder, StatusUpdateResult(False, customer_id, status=parsed, error=LifecycleError.INVALID_REMINDER_DATE)

        return parsed, reminder, None

    def _apply(self, customer_id: int, user_id: int, status: CustomerStatus, closed: bool,
               notes: Optional[str], reminder: Optional[datetime]) -> StatusUpdateResult:
        rows = self.repo.conditional_update_status(
            customer_id=customer_id,
            user_id=user_id,
            status=status.value,
            is_closed=closed,
            notes=notes,
            reminder_date=reminder,
            now=self.clock(),
        )
        if rows == 0:
            logger.warning(f"Customer not found or not assigned to user: customer_id={customer_id}, user_id={user_id}")
            return StatusUpdateResult(False, customer_id, status=status, error=LifecycleError.NOT_FOUND_OR_NOT_OWNED)

        return StatusUpdateResult(
            success=True,
            customer_id=customer_id,
            status=status,
            is_closed=closed,
            reminder_date=reminder,
            action_taken=ACTION_CLOSED if closed else ACTION_OPEN,
        )

    def update_status(self, customer_id: int, user_id: int, status, notes: Optional[str] = None,
                      reminder_date: Optional[datetime] = None) -> StatusUpdateResult:
        """Change a customer's status; closing statuses also unassign the customer"""
        parsed, reminder, failure = self._validate(customer_id, status, reminder_date)
        if failure:
            return failure

        closed = is_closed(parsed)
        result = self._apply(customer_id, user_id, parsed, closed, notes, reminder)
        if result.success:
            if closed:
                logger.info(f"Customer {customer_id} closed with status {parsed.value} and unassigned from user {user_id}")
            else:
                logger.info(f"Customer {customer_id} remains open with status {parsed.value} for user {user_id}")
        return result

    def submit_individual(self, customer_id: int, user_id: int, status, notes: Optional[str] = None,
                          reminder_date: Optional[datetime] = None) -> StatusUpdateResult:
        """
        Record a status and always move the customer out of the user's queue.

        Validation matches update_status, so a follow_up submitted with a
        reminder date must still carry a future reminder.
        """
        parsed, reminder, failure = self._validate(customer_id, status, reminder_date)
        if failure:
            return failure

        result = self._apply(customer_id, user_id, parsed, True, notes, reminder)
        if result.success:
            logger.info(f"Customer {customer_id} submitted as {parsed.value} and moved to submissions by user {user_id}")
        return result

    def list_open(self, user_id: int, page: int = 1, size: int = 50) -> CustomerPage:
        customers, total = self.repo.find_assigned_open(user_id, self.clock(), page_to_offset(page, size), size)
        return CustomerPage(customers, page, size, total)

    def list_all(self, user_id: int, page: int = 1, size: int = 50) -> CustomerPage:
        customers, total = self.repo.find_assigned_all(user_id, page_to_offset(page, size), size)
        return CustomerPage(customers, page, size, total)

    def list_follow_up(self, user_id: int, page: int = 1, size: int = 50, days_ahead: int = 7) -> CustomerPage:
        now = self.clock()
        horizon = now + timedelta(days=days_ahead)
        customers, total = self.repo.find_follow_up_due(user_id, now, horizon, page_to_offset(page, size), size)
        return CustomerPage(customers, page, size, total)

    def list_submitted(self, user_id: int, page: int = 1, size: int = 50) -> CustomerPage:
        customers, total = self.repo.find_submitted(user_id, page_to_offset(page, size), size)
        return CustomerPage(customers, page, size, total)

    def status_breakdown(self, user_id: int, closed_only: bool = False) -> List[Tuple[str, bool, int]]:
        return self.repo.status_breakdown(user_id, closed_only=closed_only)
