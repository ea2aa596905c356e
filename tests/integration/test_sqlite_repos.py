"""
SQLite adapters against a migrated temp database.
"""

import sqlite3
from datetime import timedelta
from uuid import uuid4

import pytest

from tests.fakes import FakeHasher, MockClock
from uhub.adapters.sqlite.migrator import SQLiteMigrator
from uhub.adapters.sqlite.repos import SQLiteIdentityStore, SQLiteInvitationRepo, SQLiteProfileRepo
from uhub.domain.entities import Invitation, InvitationStatus, Profile, Role
from uhub.domain.errors import (
    DuplicatePendingInvitation,
    DuplicateToken,
    StoreError,
    StoreRejected,
    StoreTimeout,
)


def _invitation(clock: MockClock, email: str = "a@example.com", token_hash: str = "") -> Invitation:
    now = clock.now_utc()
    return Invitation(
        email=email,
        role=Role.EMPLOYEE,
        token_hash=token_hash or uuid4().hex,
        issued_at=now,
        expires_at=now + timedelta(days=7),
        invited_by=uuid4(),
    )


@pytest.fixture
def repo(db_path: str) -> SQLiteInvitationRepo:
    return SQLiteInvitationRepo(db_path)


class TestMigrator:
    def test_second_run_applies_nothing(self, db_path: str) -> None:
        assert SQLiteMigrator(db_path).run_migrations() == []

    def test_fresh_database_applies_initial(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        applied = SQLiteMigrator(str(tmp_path / "fresh.db")).run_migrations()
        assert applied == ["001_initial.sql"]

    def test_pending_lists_unapplied_files(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        migrator = SQLiteMigrator(str(tmp_path / "fresh.db"))
        assert [p.name for p in migrator.pending()] == ["001_initial.sql"]

        migrator.run_migrations()
        assert migrator.pending() == []


class TestInvitationRepo:
    def test_create_and_fetch(self, repo: SQLiteInvitationRepo, clock: MockClock) -> None:
        inv = repo.create(_invitation(clock))

        by_id = repo.get_by_id(inv.id)
        by_hash = repo.get_by_token_hash(inv.token_hash)

        assert by_id == inv
        assert by_hash == inv
        assert by_id is not None and by_id.issued_at == clock.now_utc()

    def test_missing_rows(self, repo: SQLiteInvitationRepo) -> None:
        assert repo.get_by_id(uuid4()) is None
        assert repo.get_by_token_hash("nope") is None

    def test_duplicate_token_hash(self, repo: SQLiteInvitationRepo, clock: MockClock) -> None:
        repo.create(_invitation(clock, "a@example.com", token_hash="same"))
        with pytest.raises(DuplicateToken):
            repo.create(_invitation(clock, "b@example.com", token_hash="same"))

    def test_one_pending_per_email(self, repo: SQLiteInvitationRepo, clock: MockClock) -> None:
        first = repo.create(_invitation(clock))
        with pytest.raises(DuplicatePendingInvitation):
            repo.create(_invitation(clock))

        # A non-pending row no longer holds the slot
        assert repo.transition_pending(first.id, InvitationStatus.REVOKED, clock.now_utc())
        repo.create(_invitation(clock))

    def test_list_newest_first_and_filtered(
        self, repo: SQLiteInvitationRepo, clock: MockClock
    ) -> None:
        older = repo.create(_invitation(clock, "old@example.com"))
        clock.advance(timedelta(hours=1))
        newer = repo.create(_invitation(clock, "new@example.com"))

        assert [i.id for i in repo.list_invitations()] == [newer.id, older.id]
        assert [i.id for i in repo.list_invitations(invited_by=older.invited_by)] == [older.id]
        assert repo.list_invitations(status=InvitationStatus.ACCEPTED) == []

    def test_claim_then_accept(self, repo: SQLiteInvitationRepo, clock: MockClock) -> None:
        inv = repo.create(_invitation(clock))
        now = clock.now_utc()
        stale_before = now - timedelta(minutes=5)
        claim, rival = uuid4(), uuid4()

        assert repo.try_claim(inv.id, claim, now, stale_before) is True
        assert repo.try_claim(inv.id, rival, now, stale_before) is False
        assert repo.mark_accepted(inv.id, rival, uuid4(), now) is False

        account_id = uuid4()
        assert repo.mark_accepted(inv.id, claim, account_id, now) is True

        row = repo.get_by_id(inv.id)
        assert row is not None
        assert row.status == InvitationStatus.ACCEPTED
        assert row.account_id == account_id
        assert row.claim_id is None
        assert repo.mark_accepted(inv.id, claim, account_id, now) is False

    def test_released_claim_can_be_retaken(
        self, repo: SQLiteInvitationRepo, clock: MockClock
    ) -> None:
        inv = repo.create(_invitation(clock))
        now = clock.now_utc()
        claim = uuid4()
        repo.try_claim(inv.id, claim, now, now - timedelta(minutes=5))

        repo.release_claim(inv.id, claim)

        assert repo.try_claim(inv.id, uuid4(), now, now - timedelta(minutes=5)) is True

    def test_overdue_row_cannot_be_claimed(
        self, repo: SQLiteInvitationRepo, clock: MockClock
    ) -> None:
        inv = repo.create(_invitation(clock))
        later = clock.now_utc() + timedelta(days=7, seconds=1)
        assert repo.try_claim(inv.id, uuid4(), later, later - timedelta(minutes=5)) is False

    def test_transition_only_from_pending(
        self, repo: SQLiteInvitationRepo, clock: MockClock
    ) -> None:
        inv = repo.create(_invitation(clock))
        now = clock.now_utc()

        assert repo.transition_pending(inv.id, InvitationStatus.REVOKED, now) is True
        assert repo.transition_pending(inv.id, InvitationStatus.EXPIRED, now) is False

        row = repo.get_by_id(inv.id)
        assert row is not None
        assert row.status == InvitationStatus.REVOKED
        assert row.revoked_at == now

    def test_expire_overdue_scoped_by_email(
        self, repo: SQLiteInvitationRepo, clock: MockClock
    ) -> None:
        a = repo.create(_invitation(clock, "a@example.com"))
        b = repo.create(_invitation(clock, "b@example.com"))
        later = clock.now_utc() + timedelta(days=8)

        assert repo.expire_overdue(later, email="a@example.com") == 1
        assert repo.get_by_id(b.id).status == InvitationStatus.PENDING  # type: ignore[union-attr]
        assert repo.expire_overdue(later) == 1
        assert repo.get_by_id(a.id).status == InvitationStatus.EXPIRED  # type: ignore[union-attr]

    def test_delete_expired_keeps_final_rows(
        self, repo: SQLiteInvitationRepo, clock: MockClock
    ) -> None:
        pending = repo.create(_invitation(clock, "p@example.com"))
        accepted = repo.create(_invitation(clock, "a@example.com"))
        revoked = repo.create(_invitation(clock, "r@example.com"))
        now = clock.now_utc()
        claim = uuid4()
        repo.try_claim(accepted.id, claim, now, now)
        repo.mark_accepted(accepted.id, claim, uuid4(), now)
        repo.transition_pending(revoked.id, InvitationStatus.REVOKED, now)
        later = now + timedelta(days=30)

        assert repo.delete_expired(later) == 1
        assert repo.delete_expired(later) == 0
        assert repo.get_by_id(pending.id) is None
        assert repo.get_by_id(accepted.id) is not None
        assert repo.get_by_id(revoked.id) is not None

    def test_delete(self, repo: SQLiteInvitationRepo, clock: MockClock) -> None:
        inv = repo.create(_invitation(clock))
        assert repo.delete(inv.id) is True
        assert repo.delete(inv.id) is False

    def test_unexpected_sqlite_error_is_a_store_error(
        self, repo: SQLiteInvitationRepo, db_path: str
    ) -> None:
        conn = sqlite3.connect(db_path)
        conn.execute("DROP TABLE invitations")
        conn.commit()
        conn.close()

        with pytest.raises(StoreError) as exc:
            repo.delete(uuid4())
        assert not isinstance(exc.value, StoreTimeout)


class TestAccountStores:
    def test_profile_round_trip(self, db_path: str, clock: MockClock) -> None:
        profiles = SQLiteProfileRepo(db_path)
        profile = Profile(
            id=uuid4(),
            email="a@example.com",
            full_name="Ada",
            role=Role.FINANCE,
            department="Accounts",
            created_at=clock.now_utc(),
            updated_at=clock.now_utc(),
        )

        ref = profiles.create_profile(profile, timeout=1.0)

        assert ref.id == profile.id
        assert profiles.get_profile(profile.id, timeout=1.0) == profile
        assert profiles.get_by_email("a@example.com", timeout=1.0) == profile
        assert profiles.count() == 1

        profiles.delete_profile(profile.id, timeout=1.0)
        profiles.delete_profile(profile.id, timeout=1.0)
        assert profiles.get_profile(profile.id, timeout=1.0) is None

    def test_list_and_update_role(self, db_path: str, clock: MockClock) -> None:
        profiles = SQLiteProfileRepo(db_path)
        first = Profile(
            id=uuid4(),
            email="b@example.com",
            full_name="B",
            role=Role.VIEWER,
            created_at=clock.now_utc(),
            updated_at=clock.now_utc(),
        )
        clock.advance(timedelta(minutes=1))
        second = first.model_copy(
            update={"id": uuid4(), "email": "a@example.com", "created_at": clock.now_utc()}
        )
        profiles.create_profile(first, timeout=1.0)
        profiles.create_profile(second, timeout=1.0)

        assert [p.id for p in profiles.list_profiles(timeout=1.0)] == [first.id, second.id]

        later = clock.now_utc() + timedelta(hours=1)
        updated = profiles.update_role(first.id, Role.MANAGER, later, timeout=1.0)

        assert updated is not None
        assert updated.role == Role.MANAGER
        assert updated.updated_at == later
        assert profiles.get_profile(first.id, timeout=1.0) == updated
        assert profiles.update_role(uuid4(), Role.MANAGER, later, timeout=1.0) is None

    def test_duplicate_profile_rejected(self, db_path: str) -> None:
        profiles = SQLiteProfileRepo(db_path)
        profile = Profile(id=uuid4(), email="a@example.com", full_name="Ada", role=Role.VIEWER)
        profiles.create_profile(profile, timeout=1.0)

        with pytest.raises(StoreRejected):
            profiles.create_profile(profile.model_copy(update={"id": uuid4()}), timeout=1.0)

    def test_identity_store(self, db_path: str) -> None:
        identities = SQLiteIdentityStore(db_path, FakeHasher())

        ref = identities.create_identity(
            "a@example.com", "pw-123456", metadata={"role": "viewer"}, timeout=1.0
        )

        assert identities.get_identity(ref.id, timeout=1.0) == ref
        assert identities.authenticate("a@example.com", "pw-123456", timeout=1.0) == ref
        assert identities.authenticate("a@example.com", "wrong", timeout=1.0) is None
        assert identities.authenticate("b@example.com", "pw-123456", timeout=1.0) is None
        with pytest.raises(StoreRejected):
            identities.create_identity("a@example.com", "x", metadata={}, timeout=1.0)

        identities.delete_identity(ref.id, timeout=1.0)
        assert identities.get_identity(ref.id, timeout=1.0) is None
