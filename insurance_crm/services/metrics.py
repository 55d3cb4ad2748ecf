"""
Reporting over the customer base: per-user activity for the mobile app and
global dashboards for supervisors.

Dashboard categories:
    COMPLETED   = active + renewed
    IN_PROGRESS = not_reachable + follow_up + not_interested
    NOT_STARTED = not_started and anything unrecognised
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional
from sqlalchemy.orm import Session
from insurance_crm.models.customer import CustomerStatus
from insurance_crm.repositories.customer_repo import CustomerRepository
from insurance_crm.repositories.user_repo import UserRepository
from insurance_crm.utils.helpers import utcnow

logger = logging.getLogger(__name__)

COMPLETED = "COMPLETED"
IN_PROGRESS = "IN_PROGRESS"
NOT_STARTED = "NOT_STARTED"

DASHBOARD_CATEGORIES = {
    CustomerStatus.ACTIVE: COMPLETED,
    CustomerStatus.RENEWED: COMPLETED,
    CustomerStatus.NOT_REACHABLE: IN_PROGRESS,
    CustomerStatus.FOLLOW_UP: IN_PROGRESS,
    CustomerStatus.NOT_INTERESTED: IN_PROGRESS,
    CustomerStatus.NOT_STARTED: NOT_STARTED,
}


def dashboard_category(status) -> str:
    return DASHBOARD_CATEGORIES[CustomerStatus.parse(status)]


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class MetricsService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.customer_repo = CustomerRepository(db)
        self.user_repo = UserRepository(db)
        self.clock = clock

    def user_analytics(self, user_id: int) -> dict:
        """Counts of status changes made by the user plus a per-status breakdown"""
        today = start_of_day(self.clock())
        week_start = today - timedelta(days=7)
        month_start = today - timedelta(days=30)

        total_assigned = self.customer_repo.count_assigned(user_id)
        completed = self.customer_repo.count_closed_by(user_id)
        # closed customers are unassigned, so the workload is what is left plus what was completed
        workload = total_assigned + completed
        completion_rate = round(completed / workload * 100, 1) if workload else 0.0

        breakdown = {s.value: 0 for s in CustomerStatus if s is not CustomerStatus.NOT_STARTED}
        for status, _closed, count in self.customer_repo.status_breakdown(user_id):
            if status in breakdown:
                breakdown[status] += count
            else:
                logger.warning(f"Unrecognized status in breakdown for user {user_id}: '{status}'")

        daily_activity = [
            {"date": day, "count": count}
            for day, count in self.customer_repo.daily_updates_for_user(user_id, week_start)
        ]

        summary = {
            "today_count": self.customer_repo.count_updated_by_since(user_id, today),
            "week_count": self.customer_repo.count_updated_by_since(user_id, week_start),
            "month_count": self.customer_repo.count_updated_by_since(user_id, month_start),
            "total_assigned": total_assigned,
            "open_count": self.customer_repo.count_open_assigned(user_id, self.clock()),
            "completed_count": completed,
            "completion_rate": completion_rate,
        }
        logger.info(f"Analytics for user {user_id} - today: {summary['today_count']}, "
                    f"week: {summary['week_count']}, completion: {completion_rate}%")

        return {
            "summary": summary,
            "status_breakdown": breakdown,
            "daily_activity": daily_activity,
        }

    def _category_counts(self, state: Optional[str] = None) -> Dict[str, int]:
        counts = {COMPLETED: 0, IN_PROGRESS: 0, NOT_STARTED: 0}
        for status, count in self.customer_repo.count_by_status(state):
            counts[dashboard_category(status)] += count
        return counts

    def states_summary(self) -> List[dict]:
        return [
            {"state": state, "total": total, "assigned": assigned, "closed": closed}
            for state, total, assigned, closed in self.customer_repo.count_by_state()
        ]

    def top_users(self, limit: int = 10) -> List[dict]:
        result = []
        for user_id, closed in self.customer_repo.top_closers(limit):
            user = self.user_repo.get_by_id(user_id)
            result.append({
                "user_id": user_id,
                "username": user.username if user else None,
                "name": user.full_name if user else None,
                "location_state": user.location_state if user else None,
                "completed": closed,
            })
        return result

    def overview(self) -> dict:
        now = self.clock()
        counts = self._category_counts()
        states = self.states_summary()
        overview = {
            "total_customers": self.customer_repo.count_all(),
            "status_breakdown": [{"status": name, "count": count} for name, count in counts.items()],
            "states_summary": states,
            "top_users": self.top_users(),
            "date_range": {
                "from": (now - timedelta(days=30)).isoformat(),
                "to": now.isoformat(),
            },
        }
        logger.info(f"Overview metrics - {overview['total_customers']} customers, {len(states)} states")
        return overview

    def state_metrics(self, state: str) -> dict:
        counts = self._category_counts(state)
        return {
            "state": state,
            "total_customers": self.customer_repo.count_all(state),
            "status_breakdown": [{"status": name, "count": count} for name, count in counts.items()],
        }

    def available_states(self) -> List[str]:
        return self.customer_repo.distinct_states()

    def daily(self, days: int = 7) -> List[dict]:
        """One entry per day, oldest first; days without updates report zero"""
        today = start_of_day(self.clock())
        since = today - timedelta(days=days - 1)
        by_day = {day: (count, closed) for day, count, closed in self.customer_repo.daily_updates(since)}

        result = []
        for offset in range(days):
            day = (since + timedelta(days=offset)).date().isoformat()
            count, closed = by_day.get(day, (0, 0))
            result.append({
                "date": day,
                "count": count,
                "closed": closed,
                "open": count - closed,
            })
        return result
