"""
Persistence layer for bookings and the cast roster.

Every multi-row write goes through a single transaction so a submission's rows
and its correlation write-back are all-or-nothing.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from psycopg import sql

from castops.db.helpers import execute_query, execute_transaction, fetch_all, fetch_one
from castops.db.pool import DatabasePoolManager
from castops.infrastructure.observability.logging import get_logger
from castops.models.domain.booking_domain import Booking, Cast, CastType, OrderMode, Tier
from castops.models.domain.status_machine import BookingStatus

logger = get_logger(__name__)

BOOKING_COLUMNS = (
    "id, cast_id, cast_name, cast_type, account_name, project_name, project_id, "
    "role_name, rank, tier, mode, status, start_date, end_date, start_time, end_time, "
    "shoot_dates, note, cost, thread_id, permalink, calendar_event_id, "
    "created_by, updated_by, created_at, updated_at"
)

# Columns an edit is allowed to touch
EDITABLE_COLUMNS = frozenset(
    {"start_date", "end_date", "start_time", "end_time", "project_name", "shoot_dates"}
)


@dataclass(slots=True)
class CorrelationUpdate:
    """Identifiers written back onto a booking after notification."""

    booking_id: str
    thread_id: str
    permalink: str
    calendar_event_id: str | None = None


class BookingRepository:
    """Booking and cast queries backed by PostgreSQL."""

    def __init__(self, pool: DatabasePoolManager):
        self._pool = pool

    @staticmethod
    def _row_to_booking(row: dict) -> Booking:
        return Booking(
            id=str(row["id"]),
            cast_id=row["cast_id"],
            cast_name=row["cast_name"],
            cast_type=CastType(row["cast_type"]),
            status=BookingStatus(row["status"]),
            start_date=row["start_date"],
            end_date=row["end_date"],
            account_name=row.get("account_name") or "",
            project_name=row.get("project_name") or "",
            project_id=row.get("project_id") or "",
            role_name=row.get("role_name") or "",
            rank=row.get("rank") or 1,
            tier=Tier(row.get("tier") or Tier.OTHER),
            mode=OrderMode(row.get("mode") or OrderMode.SHOOTING),
            start_time=row.get("start_time"),
            end_time=row.get("end_time"),
            shoot_dates=list(row.get("shoot_dates") or []),
            note=row.get("note") or "",
            cost=row.get("cost") or 0,
            thread_id=row.get("thread_id") or "",
            permalink=row.get("permalink") or "",
            calendar_event_id=row.get("calendar_event_id") or "",
            created_by=row.get("created_by") or "",
            updated_by=row.get("updated_by") or "",
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    async def create_bookings(self, bookings: list[Booking]) -> None:
        """Insert all bookings of one submission in a single transaction."""
        insert_query = """
            INSERT INTO bookings (
                id, cast_id, cast_name, cast_type, account_name, project_name, project_id,
                role_name, rank, tier, mode, status, start_date, end_date, start_time,
                end_time, shoot_dates, note, cost, created_by, updated_by
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s, %s)
        """
        statements = [
            (
                insert_query,
                (
                    b.id,
                    b.cast_id,
                    b.cast_name,
                    b.cast_type.value,
                    b.account_name,
                    b.project_name,
                    b.project_id,
                    b.role_name,
                    b.rank,
                    b.tier.value,
                    b.mode.value,
                    b.status.value,
                    b.start_date,
                    b.end_date,
                    b.start_time,
                    b.end_time,
                    b.shoot_dates,
                    b.note,
                    b.cost,
                    b.created_by,
                    b.updated_by,
                ),
            )
            for b in bookings
        ]
        await execute_transaction(self._pool, statements)
        logger.info("Bookings created", count=len(bookings))

    async def get_booking(self, booking_id: str) -> Booking | None:
        row = await fetch_one(
            self._pool, f"SELECT {BOOKING_COLUMNS} FROM bookings WHERE id = %s", (booking_id,)
        )
        return self._row_to_booking(row) if row else None

    async def get_bookings(self, booking_ids: Iterable[str]) -> dict[str, Booking]:
        ids = list(set(booking_ids))
        if not ids:
            return {}
        rows = await fetch_all(
            self._pool,
            f"SELECT {BOOKING_COLUMNS} FROM bookings WHERE id = ANY(%s)",
            (ids,),
        )
        return {str(row["id"]): self._row_to_booking(row) for row in rows}

    async def find_thread_for_project(
        self, project_id: str, exclude_ids: Iterable[str] = ()
    ) -> Booking | None:
        """Find a booking of the same project that already owns a Slack thread."""
        query = f"""
            SELECT {BOOKING_COLUMNS}
            FROM bookings
            WHERE project_id = %s
              AND thread_id <> ''
              AND NOT (id = ANY(%s))
            ORDER BY created_at ASC
            LIMIT 1
        """
        row = await fetch_one(self._pool, query, (project_id, list(exclude_ids)))
        return self._row_to_booking(row) if row else None

    async def find_conflicting_booking(
        self,
        cast_id: str,
        day: date,
        statuses: Iterable[BookingStatus],
        exclude_ids: Iterable[str] = (),
    ) -> Booking | None:
        """First booking of the cast covering ``day`` in one of ``statuses``."""
        query = f"""
            SELECT {BOOKING_COLUMNS}
            FROM bookings
            WHERE cast_id = %s
              AND start_date <= %s
              AND end_date >= %s
              AND status = ANY(%s)
              AND NOT (id = ANY(%s))
            ORDER BY created_at ASC
            LIMIT 1
        """
        row = await fetch_one(
            self._pool,
            query,
            (cast_id, day, day, [s.value for s in statuses], list(exclude_ids)),
        )
        return self._row_to_booking(row) if row else None

    async def apply_correlation(self, updates: list[CorrelationUpdate]) -> int:
        """Write thread/permalink/hold ids back onto bookings atomically."""
        statements = []
        for update in updates:
            if update.calendar_event_id:
                statements.append(
                    (
                        """
                        UPDATE bookings
                        SET thread_id = %s, permalink = %s, calendar_event_id = %s,
                            updated_at = NOW()
                        WHERE id = %s
                        """,
                        (
                            update.thread_id,
                            update.permalink,
                            update.calendar_event_id,
                            update.booking_id,
                        ),
                    )
                )
            else:
                statements.append(
                    (
                        """
                        UPDATE bookings
                        SET thread_id = %s, permalink = %s, updated_at = NOW()
                        WHERE id = %s
                        """,
                        (update.thread_id, update.permalink, update.booking_id),
                    )
                )
        return await execute_transaction(self._pool, statements)

    async def update_status(
        self,
        booking_id: str,
        status: BookingStatus,
        actor: str,
        cost: int | None = None,
    ) -> None:
        if cost is None:
            await execute_query(
                self._pool,
                "UPDATE bookings SET status = %s, updated_by = %s, updated_at = NOW() WHERE id = %s",
                (status.value, actor, booking_id),
            )
        else:
            await execute_query(
                self._pool,
                """
                UPDATE bookings
                SET status = %s, cost = %s, updated_by = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (status.value, cost, actor, booking_id),
            )

    async def update_fields(self, booking_id: str, fields: dict, actor: str) -> None:
        unknown = set(fields) - EDITABLE_COLUMNS
        if unknown:
            raise ValueError(f"Fields not editable: {sorted(unknown)}")
        if not fields:
            return

        assignments = [
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in fields
        ]
        query = sql.SQL(
            "UPDATE bookings SET {}, updated_by = %s, updated_at = NOW() WHERE id = %s"
        ).format(sql.SQL(", ").join(assignments))
        await execute_query(self._pool, query, (*fields.values(), actor, booking_id))

    async def count_hold_sharers(
        self, event_id: str, exclude_id: str, statuses: Iterable[BookingStatus]
    ) -> int:
        """Other bookings in ``statuses`` still pointing at the calendar hold ``event_id``."""
        row = await fetch_one(
            self._pool,
            """
            SELECT COUNT(*) AS sharers
            FROM bookings
            WHERE calendar_event_id = %s
              AND id <> %s
              AND status = ANY(%s)
            """,
            (event_id, exclude_id, [s.value for s in statuses]),
        )
        return row["sharers"] if row else 0

    async def set_calendar_event_id(self, booking_id: str, event_id: str) -> None:
        await execute_query(
            self._pool,
            "UPDATE bookings SET calendar_event_id = %s, updated_at = NOW() WHERE id = %s",
            (event_id, booking_id),
        )

    async def get_cast(self, cast_id: str) -> Cast | None:
        row = await fetch_one(
            self._pool,
            "SELECT id, name, cast_type, email, slack_mention_id FROM casts WHERE id = %s",
            (cast_id,),
        )
        if not row:
            return None
        return Cast(
            id=row["id"],
            name=row["name"],
            cast_type=CastType(row["cast_type"]),
            email=row.get("email") or "",
            slack_mention_id=row.get("slack_mention_id") or "",
        )

    async def find_mention_id(self, *, name: str | None = None, email: str | None = None) -> str:
        """
        Resolve a Slack mention id by name or email, searching casts then admins.
        Returns an empty string when nothing matches.
        """
        if name:
            column = "name"
            value = name
        elif email:
            column = "email"
            value = email
        else:
            return ""

        for table in ("casts", "admins"):
            query = sql.SQL(
                "SELECT slack_mention_id FROM {} WHERE {} = %s AND slack_mention_id <> '' LIMIT 1"
            ).format(sql.Identifier(table), sql.Identifier(column))
            row = await fetch_one(self._pool, query, (value,))
            if row:
                return row["slack_mention_id"]

        return ""
