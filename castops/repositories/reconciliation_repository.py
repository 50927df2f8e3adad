"""
Read access to the rows synced in from the schedule and off-shot drive
spreadsheets. Keys are stored already normalized.
"""

from castops.db.helpers import fetch_all, fetch_one
from castops.db.pool import DatabasePoolManager
from castops.models.domain.booking_domain import ShootDetail


class ReconciliationRepository:
    def __init__(self, pool: DatabasePoolManager):
        self._pool = pool

    async def get_drive_link(self, page_key: str) -> str | None:
        row = await fetch_one(
            self._pool,
            "SELECT drive_link FROM drive_links WHERE page_key = %s AND drive_link <> '' LIMIT 1",
            (page_key,),
        )
        return row["drive_link"] if row else None

    async def list_drive_links(self) -> dict[str, str]:
        rows = await fetch_all(
            self._pool, "SELECT page_key, drive_link FROM drive_links WHERE drive_link <> ''"
        )
        return {row["page_key"]: row["drive_link"] for row in rows}

    async def list_shoot_details(
        self, page_key: str | None = None, cast_name: str | None = None
    ) -> list[ShootDetail]:
        clauses = []
        params: list = []
        if page_key:
            clauses.append("page_key = %s")
            params.append(page_key)
        if cast_name:
            clauses.append("cast_name = %s")
            params.append(cast_name)

        query = "SELECT id, page_key, cast_name, in_time, out_time, location, address FROM shoot_details"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY id"

        rows = await fetch_all(self._pool, query, tuple(params))
        return [
            ShootDetail(
                id=str(row["id"]),
                page_key=row["page_key"],
                cast_name=row["cast_name"],
                in_time=row.get("in_time") or "",
                out_time=row.get("out_time") or "",
                location=row.get("location") or "",
                address=row.get("address") or "",
            )
            for row in rows
        ]
