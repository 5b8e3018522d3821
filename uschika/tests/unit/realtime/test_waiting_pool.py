"""
Tests for the waiting pool.

Covers FIFO ordering, duplicate suppression and identity-aware partner lookup.
"""

from uschika.realtime.connection_models import Connection, Identity
from uschika.realtime.waiting_pool import WaitingPool


def _connection(connection_id: str, email: str | None) -> Connection:
    connection = Connection(connection_id=connection_id)
    if email is not None:
        connection.identity = Identity.from_email(email)
    return connection


class TestWaitingPool:
    """Test cases for WaitingPool."""

    def test_enter_adds_once(self):
        pool = WaitingPool()
        conn = _connection("a", "alice@usc.edu.ph")

        assert pool.enter(conn) is True
        assert pool.enter(conn) is False
        assert len(pool) == 1
        assert "a" in pool

    def test_leave_is_noop_when_absent(self):
        pool = WaitingPool()
        assert pool.leave("missing") is False

        pool.enter(_connection("a", "alice@usc.edu.ph"))
        assert pool.leave("a") is True
        assert pool.leave("a") is False
        assert len(pool) == 0

    def test_iteration_is_insertion_ordered(self):
        pool = WaitingPool()
        for cid, email in [("c1", "a@usc.edu.ph"), ("c2", "b@usc.edu.ph"), ("c3", "c@usc.edu.ph")]:
            pool.enter(_connection(cid, email))

        pool.leave("c2")
        pool.enter(_connection("c2", "b@usc.edu.ph"))

        assert [c.connection_id for c in pool] == ["c1", "c3", "c2"]

    def test_find_partner_returns_oldest_eligible(self):
        pool = WaitingPool()
        pool.enter(_connection("w1", "first@usc.edu.ph"))
        pool.enter(_connection("w2", "second@usc.edu.ph"))

        partner = pool.find_partner_for(_connection("r", "requester@usc.edu.ph"))

        assert partner is not None
        assert partner.connection_id == "w1"

    def test_find_partner_skips_same_user(self):
        """Entries sharing the requester's e-mail (another tab) are never chosen."""
        pool = WaitingPool()
        pool.enter(_connection("tab1", "Alice@USC.edu.ph"))
        pool.enter(_connection("w2", "bob@usc.edu.ph"))

        partner = pool.find_partner_for(_connection("tab2", "alice@usc.edu.ph"))

        assert partner is not None
        assert partner.connection_id == "w2"

    def test_find_partner_none_when_only_same_user_waits(self):
        pool = WaitingPool()
        pool.enter(_connection("tab1", "alice@usc.edu.ph"))

        assert pool.find_partner_for(_connection("tab2", "alice@usc.edu.ph")) is None

    def test_find_partner_does_not_mutate(self):
        pool = WaitingPool()
        pool.enter(_connection("w1", "first@usc.edu.ph"))

        pool.find_partner_for(_connection("r", "requester@usc.edu.ph"))

        assert len(pool) == 1
        assert "w1" in pool

    def test_find_partner_skips_requester_itself(self):
        pool = WaitingPool()
        requester = _connection("r", "requester@usc.edu.ph")
        pool.enter(requester)

        assert pool.find_partner_for(requester) is None
