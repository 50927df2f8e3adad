"""
Persistence for records derived from bookings: shooting contacts and the
cast master history.

Both tables carry a UNIQUE booking_id, so creation is idempotent even when two
confirmations race past the pre-check.
"""

from psycopg import sql

from castops.db.helpers import execute_query, execute_transaction, fetch_all, fetch_one
from castops.db.pool import DatabasePoolManager
from castops.infrastructure.observability.logging import get_logger
from castops.models.domain.booking_domain import (
    CastMasterEntry,
    CastType,
    ContactRecord,
    ContactStatus,
    Tier,
)

logger = get_logger(__name__)

CONTACT_COLUMNS = (
    "id, booking_id, cast_id, cast_name, cast_type, account_name, project_name, role_name, "
    "shoot_date, tier, status, in_time, out_time, location, address, fee, making_url, "
    "thread_id, created_at, updated_at"
)

# Fields reconciliation and staff edits may write
CONTACT_WRITABLE = frozenset(
    {"in_time", "out_time", "location", "address", "making_url", "fee", "status"}
)


class ContactRepository:
    """Shooting contacts and cast master history backed by PostgreSQL."""

    def __init__(self, pool: DatabasePoolManager):
        self._pool = pool

    @staticmethod
    def _row_to_contact(row: dict) -> ContactRecord:
        return ContactRecord(
            id=str(row["id"]),
            booking_id=row["booking_id"],
            cast_id=row["cast_id"],
            cast_name=row["cast_name"],
            cast_type=CastType(row["cast_type"]),
            shoot_date=row["shoot_date"],
            account_name=row.get("account_name") or "",
            project_name=row.get("project_name") or "",
            role_name=row.get("role_name") or "",
            tier=Tier(row.get("tier") or Tier.OTHER),
            status=ContactStatus(row.get("status") or ContactStatus.AWAITING_SCHEDULE),
            in_time=row.get("in_time") or "",
            out_time=row.get("out_time") or "",
            location=row.get("location") or "",
            address=row.get("address") or "",
            fee=row.get("fee"),
            making_url=row.get("making_url") or "",
            thread_id=row.get("thread_id") or "",
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    # ------------------------------------------------------------------
    # Shooting contacts
    # ------------------------------------------------------------------

    async def get_contact(self, contact_id: str) -> ContactRecord | None:
        row = await fetch_one(
            self._pool,
            f"SELECT {CONTACT_COLUMNS} FROM shooting_contacts WHERE id = %s",
            (contact_id,),
        )
        return self._row_to_contact(row) if row else None

    async def find_contact_by_booking(self, booking_id: str) -> ContactRecord | None:
        row = await fetch_one(
            self._pool,
            f"SELECT {CONTACT_COLUMNS} FROM shooting_contacts WHERE booking_id = %s LIMIT 1",
            (booking_id,),
        )
        return self._row_to_contact(row) if row else None

    async def create_contact_if_absent(self, contact: ContactRecord) -> bool:
        """Insert the contact unless one already references its booking."""
        query = """
            INSERT INTO shooting_contacts (
                id, booking_id, cast_id, cast_name, cast_type, account_name,
                project_name, role_name, shoot_date, tier, status, thread_id
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (booking_id) DO NOTHING
        """
        inserted = await execute_query(
            self._pool,
            query,
            (
                contact.id,
                contact.booking_id,
                contact.cast_id,
                contact.cast_name,
                contact.cast_type.value,
                contact.account_name,
                contact.project_name,
                contact.role_name,
                contact.shoot_date,
                contact.tier.value,
                contact.status.value,
                contact.thread_id,
            ),
        )
        return inserted > 0

    async def list_contacts(self, project_name: str | None = None) -> list[ContactRecord]:
        if project_name is None:
            rows = await fetch_all(self._pool, f"SELECT {CONTACT_COLUMNS} FROM shooting_contacts")
        else:
            rows = await fetch_all(
                self._pool,
                f"SELECT {CONTACT_COLUMNS} FROM shooting_contacts WHERE project_name = %s",
                (project_name,),
            )
        return [self._row_to_contact(row) for row in rows]

    async def list_contacts_missing_making_url(
        self, project_name: str | None = None
    ) -> list[ContactRecord]:
        query = f"SELECT {CONTACT_COLUMNS} FROM shooting_contacts WHERE making_url = ''"
        params: tuple = ()
        if project_name is not None:
            query += " AND project_name = %s"
            params = (project_name,)
        rows = await fetch_all(self._pool, query, params)
        return [self._row_to_contact(row) for row in rows]

    @staticmethod
    def _update_statement(contact_id: str, fields: dict) -> tuple:
        unknown = set(fields) - CONTACT_WRITABLE
        if unknown:
            raise ValueError(f"Contact fields not writable: {sorted(unknown)}")
        assignments = [sql.SQL("{} = %s").format(sql.Identifier(column)) for column in fields]
        query = sql.SQL("UPDATE shooting_contacts SET {}, updated_at = NOW() WHERE id = %s").format(
            sql.SQL(", ").join(assignments)
        )
        return query, (*fields.values(), contact_id)

    async def update_contact(self, contact_id: str, fields: dict) -> None:
        if not fields:
            return
        query, params = self._update_statement(contact_id, fields)
        await execute_query(self._pool, query, params)

    async def batch_update_contacts(self, updates: dict[str, dict]) -> int:
        """Apply per-contact field updates in one transaction."""
        statements = [
            self._update_statement(contact_id, fields)
            for contact_id, fields in updates.items()
            if fields
        ]
        if not statements:
            return 0
        await execute_transaction(self._pool, statements)
        return len(statements)

    async def rename_project_in_contacts(self, cast_id: str, old_name: str, new_name: str) -> int:
        return await execute_transaction(
            self._pool,
            [
                (
                    """
                    UPDATE shooting_contacts
                    SET project_name = %s, updated_at = NOW()
                    WHERE cast_id = %s AND project_name = %s
                    """,
                    (new_name, cast_id, old_name),
                )
            ],
        )

    # ------------------------------------------------------------------
    # Cast master history
    # ------------------------------------------------------------------

    async def create_master_entry_if_absent(self, entry: CastMasterEntry) -> bool:
        query = """
            INSERT INTO cast_master (
                id, booking_id, cast_id, cast_name, cast_type, account_name, project_name,
                role_name, tier, shoot_date, end_date, cost, decided_by
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (booking_id) DO NOTHING
        """
        inserted = await execute_query(
            self._pool,
            query,
            (
                entry.id,
                entry.booking_id,
                entry.cast_id,
                entry.cast_name,
                entry.cast_type.value,
                entry.account_name,
                entry.project_name,
                entry.role_name,
                entry.tier.value,
                entry.shoot_date,
                entry.end_date,
                entry.cost,
                entry.decided_by,
            ),
        )
        return inserted > 0

    async def rename_project_in_master(self, cast_id: str, old_name: str, new_name: str) -> int:
        return await execute_transaction(
            self._pool,
            [
                (
                    """
                    UPDATE cast_master
                    SET project_name = %s, updated_at = NOW()
                    WHERE cast_id = %s AND project_name = %s
                    """,
                    (new_name, cast_id, old_name),
                )
            ],
        )
