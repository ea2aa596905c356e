import json
import sqlite3
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from uhub.domain.entities import (
    IdentityRef,
    Invitation,
    InvitationStatus,
    Profile,
    ProfileRef,
    Role,
)
from uhub.domain.errors import (
    DuplicatePendingInvitation,
    DuplicateToken,
    StoreError,
    StoreRejected,
    StoreTimeout,
)
from uhub.ports.auth import PasswordHasherPort


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def to_db_ts(dt: datetime) -> str:
    # Fixed width so that text comparison in SQL orders like time
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str | None) -> datetime | None:
    return datetime.fromisoformat(s) if s else None


def _is_locked(e: sqlite3.OperationalError) -> bool:
    msg = str(e).lower()
    return "locked" in msg or "busy" in msg


class SQLiteInvitationRepo:
    store_name = "invitations"

    def __init__(self, db_path: str, busy_timeout: float = 5.0):
        self.db_path = db_path
        self.busy_timeout = busy_timeout

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _write(self, operation: str, sql: str, params: tuple[Any, ...]) -> int:
        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            return cur.rowcount
        except sqlite3.OperationalError as e:
            conn.rollback()
            if _is_locked(e):
                raise StoreTimeout(self.store_name, operation, self.busy_timeout) from e
            raise StoreError(self.store_name, str(e)) from e
        finally:
            conn.close()

    def _read(self, sql: str, params: tuple[Any, ...]) -> list[dict[str, Any]]:
        conn = self._get_conn()
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.OperationalError as e:
            if _is_locked(e):
                raise StoreTimeout(self.store_name, "read", self.busy_timeout) from e
            raise StoreError(self.store_name, str(e)) from e
        finally:
            conn.close()

    def create(self, invitation: Invitation) -> Invitation:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO invitations (
                    id, email, role, department, token_hash, status,
                    issued_at, expires_at, invited_by
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    str(invitation.id),
                    invitation.email,
                    invitation.role.value,
                    invitation.department,
                    invitation.token_hash,
                    invitation.status.value,
                    to_db_ts(invitation.issued_at),
                    to_db_ts(invitation.expires_at),
                    str(invitation.invited_by),
                ),
            )
            conn.commit()
            return invitation
        except sqlite3.IntegrityError as e:
            conn.rollback()
            msg = str(e)
            if "token_hash" in msg:
                raise DuplicateToken() from e
            if "email" in msg:
                raise DuplicatePendingInvitation(invitation.email) from e
            raise StoreRejected(self.store_name, msg) from e
        except sqlite3.OperationalError as e:
            conn.rollback()
            if _is_locked(e):
                raise StoreTimeout(self.store_name, "create", self.busy_timeout) from e
            raise StoreError(self.store_name, str(e)) from e
        finally:
            conn.close()

    def get_by_id(self, invitation_id: UUID) -> Invitation | None:
        rows = self._read("SELECT * FROM invitations WHERE id = ?", (str(invitation_id),))
        return self._map_row(rows[0]) if rows else None

    def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        rows = self._read("SELECT * FROM invitations WHERE token_hash = ?", (token_hash,))
        return self._map_row(rows[0]) if rows else None

    def list_invitations(
        self,
        status: InvitationStatus | None = None,
        invited_by: UUID | None = None,
    ) -> list[Invitation]:
        query = "SELECT * FROM invitations"
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        if invited_by is not None:
            clauses.append("invited_by = ?")
            params.append(str(invited_by))
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY issued_at DESC"

        return [self._map_row(r) for r in self._read(query, tuple(params))]

    def try_claim(
        self, invitation_id: UUID, claim_id: UUID, now: datetime, stale_before: datetime
    ) -> bool:
        changed = self._write(
            "try_claim",
            """
            UPDATE invitations SET claim_id = ?, claimed_at = ?
            WHERE id = ? AND status = 'pending' AND expires_at >= ?
              AND (claim_id IS NULL OR claimed_at < ?)
            """,
            (
                str(claim_id),
                to_db_ts(now),
                str(invitation_id),
                to_db_ts(now),
                to_db_ts(stale_before),
            ),
        )
        return changed == 1

    def release_claim(self, invitation_id: UUID, claim_id: UUID) -> None:
        self._write(
            "release_claim",
            "UPDATE invitations SET claim_id = NULL, claimed_at = NULL "
            "WHERE id = ? AND claim_id = ?",
            (str(invitation_id), str(claim_id)),
        )

    def mark_accepted(
        self, invitation_id: UUID, claim_id: UUID, account_id: UUID, now: datetime
    ) -> bool:
        changed = self._write(
            "mark_accepted",
            """
            UPDATE invitations
            SET status = 'accepted', accepted_at = ?, account_id = ?,
                claim_id = NULL, claimed_at = NULL
            WHERE id = ? AND status = 'pending' AND claim_id = ?
            """,
            (to_db_ts(now), str(account_id), str(invitation_id), str(claim_id)),
        )
        return changed == 1

    def transition_pending(
        self, invitation_id: UUID, new_status: InvitationStatus, now: datetime
    ) -> bool:
        revoked_at = to_db_ts(now) if new_status == InvitationStatus.REVOKED else None
        changed = self._write(
            "transition_pending",
            "UPDATE invitations SET status = ?, revoked_at = COALESCE(?, revoked_at), "
            "claim_id = NULL, claimed_at = NULL "
            "WHERE id = ? AND status = 'pending'",
            (new_status.value, revoked_at, str(invitation_id)),
        )
        return changed == 1

    def expire_overdue(self, now: datetime, email: str | None = None) -> int:
        query = (
            "UPDATE invitations SET status = 'expired', claim_id = NULL, claimed_at = NULL "
            "WHERE status = 'pending' AND expires_at < ?"
        )
        params: tuple[Any, ...] = (to_db_ts(now),)
        if email is not None:
            query += " AND email = ?"
            params = (to_db_ts(now), email)
        return self._write("expire_overdue", query, params)

    def delete(self, invitation_id: UUID) -> bool:
        changed = self._write(
            "delete", "DELETE FROM invitations WHERE id = ?", (str(invitation_id),)
        )
        return changed == 1

    def delete_expired(self, now: datetime) -> int:
        return self._write(
            "delete_expired",
            "DELETE FROM invitations "
            "WHERE status IN ('pending', 'expired') AND expires_at < ?",
            (to_db_ts(now),),
        )

    def _map_row(self, row: dict[str, Any]) -> Invitation:
        def parse_uuid(s: str | None) -> UUID | None:
            return UUID(s) if s else None

        return Invitation(
            id=UUID(row["id"]),
            email=row["email"],
            role=row["role"],
            department=row["department"],
            token_hash=row["token_hash"],
            status=InvitationStatus(row["status"]),
            issued_at=datetime.fromisoformat(row["issued_at"]),
            expires_at=datetime.fromisoformat(row["expires_at"]),
            invited_by=UUID(row["invited_by"]),
            accepted_at=parse_dt(row["accepted_at"]),
            account_id=parse_uuid(row["account_id"]),
            revoked_at=parse_dt(row["revoked_at"]),
            claim_id=parse_uuid(row["claim_id"]),
            claimed_at=parse_dt(row["claimed_at"]),
        )


class SQLiteProfileRepo:
    store_name = "profiles"

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self, timeout: float) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=timeout)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def create_profile(self, profile: Profile, *, timeout: float) -> ProfileRef:
        conn = self._get_conn(timeout)
        try:
            conn.execute(
                """
                INSERT INTO profiles (
                    id, email, full_name, role, department, phone, location,
                    status, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    str(profile.id),
                    profile.email,
                    profile.full_name,
                    profile.role.value,
                    profile.department,
                    profile.phone,
                    profile.location,
                    profile.status,
                    to_db_ts(profile.created_at),
                    to_db_ts(profile.updated_at),
                ),
            )
            conn.commit()
            return ProfileRef(id=profile.id)
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise StoreRejected(self.store_name, str(e)) from e
        except sqlite3.OperationalError as e:
            conn.rollback()
            if _is_locked(e):
                raise StoreTimeout(self.store_name, "create_profile", timeout) from e
            raise StoreRejected(self.store_name, str(e)) from e
        finally:
            conn.close()

    def get_profile(self, profile_id: UUID, *, timeout: float) -> Profile | None:
        return self._get_one("id", str(profile_id), timeout)

    def get_by_email(self, email: str, *, timeout: float) -> Profile | None:
        return self._get_one("email", email, timeout)

    def _get_one(self, column: str, value: str, timeout: float) -> Profile | None:
        conn = self._get_conn(timeout)
        try:
            row = conn.execute(
                f"SELECT * FROM profiles WHERE {column} = ?", (value,)
            ).fetchone()
            return self._map_row(row) if row else None
        except sqlite3.OperationalError as e:
            if _is_locked(e):
                raise StoreTimeout(self.store_name, "get_profile", timeout) from e
            raise StoreError(self.store_name, str(e)) from e
        finally:
            conn.close()

    def delete_profile(self, profile_id: UUID, *, timeout: float) -> None:
        conn = self._get_conn(timeout)
        try:
            conn.execute("DELETE FROM profiles WHERE id = ?", (str(profile_id),))
            conn.commit()
        except sqlite3.OperationalError as e:
            conn.rollback()
            if _is_locked(e):
                raise StoreTimeout(self.store_name, "delete_profile", timeout) from e
            raise StoreRejected(self.store_name, str(e)) from e
        finally:
            conn.close()

    def list_profiles(self, *, timeout: float) -> list[Profile]:
        conn = self._get_conn(timeout)
        try:
            rows = conn.execute("SELECT * FROM profiles ORDER BY created_at, email").fetchall()
            return [self._map_row(r) for r in rows]
        except sqlite3.OperationalError as e:
            if _is_locked(e):
                raise StoreTimeout(self.store_name, "list_profiles", timeout) from e
            raise StoreError(self.store_name, str(e)) from e
        finally:
            conn.close()

    def update_role(
        self, profile_id: UUID, role: Role, updated_at: datetime, *, timeout: float
    ) -> Profile | None:
        conn = self._get_conn(timeout)
        try:
            cursor = conn.execute(
                "UPDATE profiles SET role = ?, updated_at = ? WHERE id = ?",
                (role.value, to_db_ts(updated_at), str(profile_id)),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
            row = conn.execute(
                "SELECT * FROM profiles WHERE id = ?", (str(profile_id),)
            ).fetchone()
            return self._map_row(row) if row else None
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise StoreRejected(self.store_name, str(e)) from e
        except sqlite3.OperationalError as e:
            conn.rollback()
            if _is_locked(e):
                raise StoreTimeout(self.store_name, "update_role", timeout) from e
            raise StoreError(self.store_name, str(e)) from e
        finally:
            conn.close()

    def count(self) -> int:
        conn = self._get_conn(5.0)
        try:
            row = conn.execute("SELECT COUNT(*) AS n FROM profiles").fetchone()
            return int(row["n"])
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> Profile:
        return Profile(
            id=UUID(row["id"]),
            email=row["email"],
            full_name=row["full_name"],
            role=row["role"],
            department=row["department"],
            phone=row["phone"],
            location=row["location"],
            status=row["status"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteIdentityStore:
    """Local identity store for development and single-node deployments."""

    store_name = "identities"

    def __init__(self, db_path: str, hasher: PasswordHasherPort):
        self.db_path = db_path
        self.hasher = hasher

    def _get_conn(self, timeout: float) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=timeout)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def create_identity(
        self, email: str, password: str, *, metadata: Mapping[str, str], timeout: float
    ) -> IdentityRef:
        identity_id = uuid4()
        conn = self._get_conn(timeout)
        try:
            conn.execute(
                "INSERT INTO identities (id, email, password_hash, metadata_json, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    str(identity_id),
                    email,
                    self.hasher.hash_password(password),
                    json.dumps(dict(metadata)),
                    to_db_ts(datetime.now(UTC)),
                ),
            )
            conn.commit()
            return IdentityRef(id=identity_id, email=email)
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise StoreRejected(self.store_name, f"email already registered: {email}") from e
        except sqlite3.OperationalError as e:
            conn.rollback()
            if _is_locked(e):
                raise StoreTimeout(self.store_name, "create_identity", timeout) from e
            raise StoreRejected(self.store_name, str(e)) from e
        finally:
            conn.close()

    def get_identity(self, identity_id: UUID, *, timeout: float) -> IdentityRef | None:
        row = self._fetch("id", str(identity_id), timeout)
        return IdentityRef(id=UUID(row["id"]), email=row["email"]) if row else None

    def delete_identity(self, identity_id: UUID, *, timeout: float) -> None:
        conn = self._get_conn(timeout)
        try:
            conn.execute("DELETE FROM identities WHERE id = ?", (str(identity_id),))
            conn.commit()
        except sqlite3.OperationalError as e:
            conn.rollback()
            if _is_locked(e):
                raise StoreTimeout(self.store_name, "delete_identity", timeout) from e
            raise StoreRejected(self.store_name, str(e)) from e
        finally:
            conn.close()

    def authenticate(self, email: str, password: str, *, timeout: float) -> IdentityRef | None:
        row = self._fetch("email", email, timeout)
        if not row:
            return None
        if not self.hasher.verify_password(password, row["password_hash"]):
            return None
        return IdentityRef(id=UUID(row["id"]), email=row["email"])

    def _fetch(self, column: str, value: str, timeout: float) -> dict[str, Any] | None:
        conn = self._get_conn(timeout)
        try:
            row: dict[str, Any] | None = conn.execute(
                f"SELECT * FROM identities WHERE {column} = ?", (value,)
            ).fetchone()
            return row
        except sqlite3.OperationalError as e:
            if _is_locked(e):
                raise StoreTimeout(self.store_name, "read", timeout) from e
            raise StoreError(self.store_name, str(e)) from e
        finally:
            conn.close()
