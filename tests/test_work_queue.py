"""Ordering and filtering of an agent's work queues."""
from datetime import datetime, timedelta

from insurance_crm.repositories.customer_repo import CustomerRepository
from insurance_crm.services.customer_lifecycle import CustomerLifecycleService


def test_open_queue_orders_by_reminder_or_last_update(db, make_user, make_customer, clock):
    agent = make_user()
    now = clock.now
    old = make_customer(assigned_to=agent.id, last_status_updated=now - timedelta(days=5))
    recent = make_customer(assigned_to=agent.id, last_status_updated=now - timedelta(hours=1))
    # due follow-up sorts by its reminder, which is older than 'recent' but newer than 'old'
    due = make_customer(
        assigned_to=agent.id,
        customer_status="follow_up",
        reminder_date=now - timedelta(days=1),
        last_status_updated=now - timedelta(days=10),
    )

    page = CustomerLifecycleService(db, clock=clock).list_open(agent.id, 1, 50)

    assert [c.id for c in page.customers] == [recent.id, due.id, old.id]


def test_open_queue_excludes_closed_and_other_users(db, make_user, make_customer, clock):
    agent = make_user()
    other = make_user()
    mine = make_customer(assigned_to=agent.id)
    make_customer(assigned_to=other.id)
    make_customer(assigned_to=agent.id, customer_status="renewed")

    page = CustomerLifecycleService(db, clock=clock).list_open(agent.id)

    assert [c.id for c in page.customers] == [mine.id]
    assert page.total == 1


def test_create_never_leaves_closed_customer_assigned(db, make_user, make_customer):
    agent = make_user()
    customer = make_customer(assigned_to=agent.id, customer_status="renewed")
    assert customer.assigned_to is None
    assert customer.is_closed is True


def test_null_status_counts_as_open(db, make_user, make_customer, clock):
    agent = make_user()
    customer = make_customer(assigned_to=agent.id)
    customer.customer_status = None
    customer.is_closed = None
    db.commit()

    page = CustomerLifecycleService(db, clock=clock).list_open(agent.id)
    assert [c.id for c in page.customers] == [customer.id]


def test_pagination_is_one_based(db, make_user, make_customer, clock):
    agent = make_user()
    for i in range(5):
        make_customer(assigned_to=agent.id, last_status_updated=clock.now - timedelta(hours=i))
    service = CustomerLifecycleService(db, clock=clock)

    first = service.list_open(agent.id, page=1, size=2)
    third = service.list_open(agent.id, page=3, size=2)

    assert first.total == 5
    assert first.total_pages == 3
    assert len(first.customers) == 2
    assert len(third.customers) == 1
    assert set(c.id for c in first.customers).isdisjoint(c.id for c in third.customers)


def test_follow_up_list_is_soonest_first_within_horizon(db, make_user, make_customer, clock):
    agent = make_user()
    now = clock.now
    later = make_customer(assigned_to=agent.id, customer_status="follow_up", reminder_date=now + timedelta(days=5))
    sooner = make_customer(assigned_to=agent.id, customer_status="follow_up", reminder_date=now + timedelta(days=1))
    overdue = make_customer(assigned_to=agent.id, customer_status="follow_up", reminder_date=now - timedelta(days=1))
    make_customer(assigned_to=agent.id, customer_status="follow_up", reminder_date=now + timedelta(days=30))
    make_customer(assigned_to=agent.id, customer_status="not_reachable")

    page = CustomerLifecycleService(db, clock=clock).list_follow_up(agent.id, days_ahead=7)

    assert [c.id for c in page.customers] == [overdue.id, sooner.id, later.id]


def test_assign_only_takes_open_unassigned_customers(db, make_user, make_customer):
    agent = make_user()
    other = make_user()
    free = make_customer()
    taken = make_customer(assigned_to=other.id)
    closed = make_customer(customer_status="active")
    repo = CustomerRepository(db)

    assigned = repo.assign_to_user([free.id, taken.id, closed.id], agent.id, datetime(2025, 6, 1))

    assert assigned == 1
    db.expire_all()
    assert repo.get_by_id(free.id).assigned_to == agent.id
    assert repo.get_by_id(taken.id).assigned_to == other.id
    assert repo.get_by_id(closed.id).assigned_to is None


def test_search_prefers_mobile_number(db, make_customer):
    by_number = make_customer(first_name="Lakshmi", mobile_number="9845011111")
    make_customer(first_name="Suresh", mobile_number="9000000000")
    repo = CustomerRepository(db)

    assert [c.id for c in repo.search("45011")] == [by_number.id]
    assert [c.id for c in repo.search("laksh")] == [by_number.id]
    assert repo.search("   ") == []
