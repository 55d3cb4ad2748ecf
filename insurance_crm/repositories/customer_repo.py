from sqlalchemy.orm import Session
from sqlalchemy import and_, or_, case, func, update, asc, desc
from typing import Optional, List, Tuple
from datetime import datetime
from insurance_crm.models.customer import Customer, CustomerStatus
from insurance_crm.utils.helpers import format_phone_number


FOLLOW_UP = CustomerStatus.FOLLOW_UP.value

SORTABLE_FIELDS = {
    "id": Customer.id,
    "created_at": Customer.created_at,
    "updated_at": Customer.updated_at,
    "first_name": Customer.first_name,
    "mobile_number": Customer.mobile_number,
    "state": Customer.state,
    "city": Customer.city,
    "customer_status": Customer.customer_status,
    "last_status_updated": Customer.last_status_updated,
}


def _not_closed():
    return or_(Customer.is_closed.is_(False), Customer.is_closed.is_(None))


def _work_queue_order():
    """follow_up rows with a reminder sort by the reminder, everything else by last status change"""
    sort_key = case(
        (and_(Customer.customer_status == FOLLOW_UP, Customer.reminder_date.isnot(None)), Customer.reminder_date),
        else_=Customer.last_status_updated,
    )
    return [desc(sort_key), desc(Customer.id)]


class CustomerRepository:
    def __init__(self, db: Session):
        self.db = db

    def _paginate(self, query, skip: int, limit: int) -> Tuple[List[Customer], int]:
        total = query.order_by(None).count()
        customers = query.offset(skip).limit(limit).all()
        return customers, total

    def get_by_id(self, customer_id: int) -> Optional[Customer]:
        """Get customer by ID"""
        return self.db.query(Customer).filter(Customer.id == customer_id).first()

    # Work queue

    def find_assigned_open(self, user_id: int, now: datetime, skip: int = 0, limit: int = 50) -> Tuple[List[Customer], int]:
        """Open customers of a user, hiding follow-ups whose reminder is still in the future"""
        query = self.db.query(Customer).filter(
            Customer.assigned_to == user_id,
            _not_closed(),
            or_(
                Customer.customer_status.is_(None),
                Customer.customer_status != FOLLOW_UP,
                Customer.reminder_date.is_(None),
                Customer.reminder_date <= now,
            ),
        ).order_by(*_work_queue_order())
        return self._paginate(query, skip, limit)

    def find_assigned_all(self, user_id: int, skip: int = 0, limit: int = 50) -> Tuple[List[Customer], int]:
        """Every customer assigned to a user, open or closed"""
        query = self.db.query(Customer).filter(
            Customer.assigned_to == user_id,
        ).order_by(*_work_queue_order())
        return self._paginate(query, skip, limit)

    def find_follow_up_due(self, user_id: int, now: datetime, horizon: datetime, skip: int = 0, limit: int = 50) -> Tuple[List[Customer], int]:
        """Follow-ups due before the horizon, soonest first"""
        query = self.db.query(Customer).filter(
            Customer.assigned_to == user_id,
            Customer.customer_status == FOLLOW_UP,
            Customer.reminder_date.isnot(None),
            Customer.reminder_date <= horizon,
            _not_closed(),
        ).order_by(asc(Customer.reminder_date), asc(Customer.id))
        return self._paginate(query, skip, limit)

    def find_submitted(self, user_id: int, skip: int = 0, limit: int = 50) -> Tuple[List[Customer], int]:
        """Closed customers last updated by the user"""
        query = self.db.query(Customer).filter(
            Customer.status_updated_by == user_id,
            Customer.is_closed.is_(True),
        ).order_by(desc(Customer.last_status_updated), desc(Customer.id))
        return self._paginate(query, skip, limit)

    def conditional_update_status(
        self,
        customer_id: int,
        user_id: int,
        status: str,
        is_closed: bool,
        notes: Optional[str],
        reminder_date: Optional[datetime],
        now: datetime,
    ) -> int:
        """
        Apply a status transition if and only if the customer is assigned to the user.

        Returns the number of rows changed (0 or 1). Closing a customer clears
        assigned_to in the same statement.
        """
        values = {
            "customer_status": status,
            "is_closed": is_closed,
            "reminder_date": reminder_date,
            "status_updated_by": user_id,
            "last_status_updated": now,
            "updated_at": now,
        }
        if notes is not None:
            values["notes"] = notes
        if is_closed:
            values["assigned_to"] = None

        stmt = (
            update(Customer)
            .where(Customer.id == customer_id, Customer.assigned_to == user_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.commit()
        return result.rowcount

    # Status counts

    def status_breakdown(self, user_id: int, closed_only: bool = False) -> List[Tuple[str, bool, int]]:
        """(status, is_closed, count) for customers whose status was last set by the user"""
        query = self.db.query(
            Customer.customer_status,
            Customer.is_closed,
            func.count(Customer.id),
        ).filter(
            Customer.status_updated_by == user_id,
            Customer.customer_status.isnot(None),
        )
        if closed_only:
            query = query.filter(Customer.is_closed.is_(True))
        rows = query.group_by(Customer.customer_status, Customer.is_closed).order_by(Customer.customer_status).all()
        return [(row[0], bool(row[1]), row[2]) for row in rows]

    def count_open_assigned(self, user_id: int, now: datetime) -> int:
        _, total = self.find_assigned_open(user_id, now, 0, 1)
        return total

    def count_assigned(self, user_id: int) -> int:
        return self.db.query(Customer).filter(Customer.assigned_to == user_id).count()

    def count_updated_by_since(self, user_id: int, since: datetime) -> int:
        return self.db.query(Customer).filter(
            Customer.status_updated_by == user_id,
            Customer.last_status_updated >= since,
        ).count()

    def count_closed_by(self, user_id: int) -> int:
        return self.db.query(Customer).filter(
            Customer.status_updated_by == user_id,
            Customer.is_closed.is_(True),
        ).count()

    def daily_updates_for_user(self, user_id: int, since: datetime) -> List[Tuple[str, int]]:
        day = func.date(Customer.last_status_updated)
        rows = self.db.query(day, func.count(Customer.id)).filter(
            Customer.status_updated_by == user_id,
            Customer.last_status_updated >= since,
        ).group_by(day).order_by(desc(day)).all()
        return [(str(row[0]), row[1]) for row in rows]

    # Supervisor metrics

    def count_all(self, state: Optional[str] = None) -> int:
        query = self.db.query(Customer)
        if state:
            query = query.filter(Customer.state == state)
        return query.count()

    def count_by_status(self, state: Optional[str] = None) -> List[Tuple[str, int]]:
        """(status, count) over all customers; a missing status counts as not_started"""
        status = func.coalesce(Customer.customer_status, CustomerStatus.NOT_STARTED.value)
        query = self.db.query(status, func.count(Customer.id))
        if state:
            query = query.filter(Customer.state == state)
        rows = query.group_by(status).all()
        return [(row[0], row[1]) for row in rows]

    def distinct_states(self) -> List[str]:
        rows = self.db.query(Customer.state).filter(
            Customer.state.isnot(None),
            Customer.state != "",
        ).distinct().order_by(Customer.state).all()
        return [row[0] for row in rows]

    def count_by_state(self) -> List[Tuple[str, int, int, int]]:
        """(state, total, assigned, closed) per state"""
        assigned = func.sum(case((Customer.assigned_to.isnot(None), 1), else_=0))
        closed = func.sum(case((Customer.is_closed.is_(True), 1), else_=0))
        rows = self.db.query(
            Customer.state,
            func.count(Customer.id),
            assigned,
            closed,
        ).filter(Customer.state.isnot(None)).group_by(Customer.state).order_by(Customer.state).all()
        return [(row[0], row[1], int(row[2] or 0), int(row[3] or 0)) for row in rows]

    def top_closers(self, limit: int = 10) -> List[Tuple[int, int]]:
        """(user_id, closed count) for the users who closed the most customers"""
        closed = func.count(Customer.id)
        rows = self.db.query(Customer.status_updated_by, closed).filter(
            Customer.status_updated_by.isnot(None),
            Customer.is_closed.is_(True),
        ).group_by(Customer.status_updated_by).order_by(desc(closed), asc(Customer.status_updated_by)).limit(limit).all()
        return [(row[0], row[1]) for row in rows]

    def daily_updates(self, since: datetime) -> List[Tuple[str, int, int]]:
        """(day, status updates, closures) per day since the given time, newest day first"""
        day = func.date(Customer.last_status_updated)
        closed = func.sum(case((Customer.is_closed.is_(True), 1), else_=0))
        rows = self.db.query(day, func.count(Customer.id), closed).filter(
            Customer.status_updated_by.isnot(None),
            Customer.last_status_updated >= since,
        ).group_by(day).order_by(desc(day)).all()
        return [(str(row[0]), row[1], int(row[2] or 0)) for row in rows]

    # Admin allocation

    def get_all(
        self,
        skip: int = 0,
        limit: int = 50,
        state: Optional[str] = None,
        assigned_to: Optional[int] = None,
        unassigned_only: bool = False,
        sort_field: str = "id",
        sort_desc: bool = True,
    ) -> Tuple[List[Customer], int]:
        """Get customers with optional state and assignment filters"""
        query = self.db.query(Customer)

        if state:
            query = query.filter(Customer.state == state)
        if unassigned_only:
            query = query.filter(Customer.assigned_to.is_(None))
        elif assigned_to is not None:
            query = query.filter(Customer.assigned_to == assigned_to)

        column = SORTABLE_FIELDS.get(sort_field, Customer.id)
        query = query.order_by(desc(column) if sort_desc else asc(column))
        return self._paginate(query, skip, limit)

    def find_unassigned(self, skip: int = 0, limit: int = 50, state: Optional[str] = None) -> Tuple[List[Customer], int]:
        """Open customers nobody owns, newest first"""
        query = self.db.query(Customer).filter(
            Customer.assigned_to.is_(None),
            _not_closed(),
        )
        if state:
            query = query.filter(Customer.state == state)
        query = query.order_by(desc(Customer.created_at), desc(Customer.id))
        return self._paginate(query, skip, limit)

    def assign_to_user(self, customer_ids: List[int], user_id: int, now: datetime) -> int:
        """Assign the given customers to a user; only open, unassigned rows are taken"""
        if not customer_ids:
            return 0
        stmt = (
            update(Customer)
            .where(
                Customer.id.in_(customer_ids),
                Customer.assigned_to.is_(None),
                _not_closed(),
            )
            .values(assigned_to=user_id, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.commit()
        return result.rowcount

    def search(self, term: str, limit: int = 100) -> List[Customer]:
        """Digits search the mobile number first; otherwise match on name"""
        term = (term or "").strip()
        if not term:
            return []

        digits = format_phone_number(term)
        if digits and digits == term:
            by_mobile = self.db.query(Customer).filter(
                Customer.mobile_number.like(f"%{digits}%")
            ).limit(limit).all()
            if by_mobile:
                return by_mobile

        return self.db.query(Customer).filter(
            Customer.first_name.ilike(f"%{term}%")
        ).limit(limit).all()

    def create(self, **fields) -> Customer:
        """Create a customer (seed/import tooling); status transitions go through the lifecycle service"""
        status = CustomerStatus.parse(fields.pop("customer_status", None))
        fields.pop("is_closed", None)
        customer = Customer(customer_status=status.value, is_closed=status.is_closed, **fields)
        if customer.is_closed:
            customer.assigned_to = None
        self.db.add(customer)
        self.db.commit()
        self.db.refresh(customer)
        return customer
