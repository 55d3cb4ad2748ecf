"""
Unit tests for status classification and the small pure helpers around it.
"""
from datetime import datetime, timedelta, timezone

import pytest

from insurance_crm.models.customer import CustomerStatus
from insurance_crm.models.user import UserRole
from insurance_crm.services.customer_lifecycle import (
    is_closed,
    is_open,
    closed_statuses,
    open_statuses,
    parse_assignable_status,
)
from insurance_crm.utils.helpers import (
    normalize_state_name,
    page_to_offset,
    total_pages,
    to_naive_utc,
    format_phone_number,
)
from insurance_crm.utils.security import hash_pin, verify_pin, create_access_token, decode_access_token


class TestStatusClassification:
    @pytest.mark.parametrize("status", ["active", "renewed", "not_interested"])
    def test_closed_statuses(self, status):
        assert is_closed(status)
        assert not is_open(status)

    @pytest.mark.parametrize("status", ["not_reachable", "follow_up", "not_started"])
    def test_open_statuses(self, status):
        assert is_open(status)
        assert not is_closed(status)

    def test_every_enum_member_agrees_with_closed_set(self):
        for status in CustomerStatus:
            assert is_closed(status) == (status.value in {"active", "renewed", "not_interested"})

    @pytest.mark.parametrize("status", list(CustomerStatus))
    def test_enum_members_classify_like_their_values(self, status):
        assert CustomerStatus.parse(status) is status
        assert is_closed(status) == is_closed(status.value)

    def test_closed_members(self):
        assert is_closed(CustomerStatus.ACTIVE)
        assert is_closed(CustomerStatus.NOT_INTERESTED)
        assert not is_closed(CustomerStatus.FOLLOW_UP)
        assert CustomerStatus.RENEWED.is_closed

    def test_missing_or_unknown_status_reads_as_open(self):
        assert is_open(None)
        assert is_open("something_else")
        assert CustomerStatus.parse(None) is CustomerStatus.NOT_STARTED

    def test_status_lists(self):
        assert closed_statuses() == ["active", "renewed", "not_interested"]
        assert open_statuses() == ["not_reachable", "follow_up"]


class TestParseAssignableStatus:
    def test_accepts_the_five_settable_statuses(self):
        for value in ["active", "renewed", "not_interested", "not_reachable", "follow_up"]:
            assert parse_assignable_status(value).value == value

    def test_is_case_and_whitespace_insensitive(self):
        assert parse_assignable_status("  Follow_Up ") is CustomerStatus.FOLLOW_UP

    def test_rejects_not_started_and_garbage(self):
        assert parse_assignable_status("not_started") is None
        assert parse_assignable_status(CustomerStatus.NOT_STARTED) is None
        assert parse_assignable_status("closed") is None
        assert parse_assignable_status("") is None


class TestHelpers:
    def test_normalize_state_name(self):
        assert normalize_state_name("Andhra Pradesh") == "AndhraPradesh"
        assert normalize_state_name("tamil-nadu") == "TamilNadu"
        assert normalize_state_name("karnataka") == "Karnataka"
        assert normalize_state_name("TamilNadu") == "TamilNadu"
        assert normalize_state_name("   ") is None
        assert normalize_state_name(None) is None

    def test_pagination_math(self):
        assert page_to_offset(1, 50) == 0
        assert page_to_offset(3, 20) == 40
        assert page_to_offset(0, 20) == 0
        assert total_pages(0, 50) == 0
        assert total_pages(101, 50) == 3

    def test_to_naive_utc(self):
        aware = datetime(2025, 1, 1, 15, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))
        assert to_naive_utc(aware) == datetime(2025, 1, 1, 10, 0)
        naive = datetime(2025, 1, 1, 10, 0)
        assert to_naive_utc(naive) is naive
        assert to_naive_utc(None) is None

    def test_format_phone_number(self):
        assert format_phone_number("+91 98450-12345") == "919845012345"


class TestRoles:
    def test_parse_accepts_either_case(self):
        assert UserRole.parse("MOBILE_USER") is UserRole.MOBILE_USER
        assert UserRole.parse("supervisor") is UserRole.SUPERVISOR

    def test_parse_accepts_members(self):
        assert UserRole.parse(UserRole.ADMIN) is UserRole.ADMIN

    def test_unknown_role_falls_back_to_user(self):
        assert UserRole.parse("root") is UserRole.USER
        assert UserRole.parse(None) is UserRole.USER

    def test_supervisor_includes_admin(self):
        assert UserRole.ADMIN.is_supervisor
        assert UserRole.SUPERVISOR.is_supervisor
        assert not UserRole.MOBILE_USER.is_supervisor
        assert not UserRole.SUPERVISOR.is_admin


class TestSecurity:
    def test_pin_hash_round_trip(self):
        pin_hash = hash_pin("4321")
        assert verify_pin("4321", pin_hash)
        assert not verify_pin("1234", pin_hash)
        assert not verify_pin("4321", None)
        assert not verify_pin("4321", "plaintext")

    def test_pin_hash_is_salted(self):
        assert hash_pin("4321") != hash_pin("4321")

    def test_token_carries_claims(self):
        payload = decode_access_token(create_access_token({"sub": "7", "username": "ravi"}))
        assert payload["sub"] == "7"
        assert payload["username"] == "ravi"
        assert "exp" in payload

    def test_expired_and_tampered_tokens_are_rejected(self):
        expired = create_access_token({"sub": "7"}, expires_delta=timedelta(seconds=-10))
        assert decode_access_token(expired) is None
        assert decode_access_token(create_access_token({"sub": "7"}) + "x") is None
