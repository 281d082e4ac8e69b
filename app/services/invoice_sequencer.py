"""Monthly invoice codes: ``<last digit of Jalali year><MM><seq>``, e.g. ``40501``.

The per-month counter row is bumped with a single ``INSERT ... ON CONFLICT DO
UPDATE ... RETURNING`` statement, so concurrent allocations in the same month
never observe the same value. The statement runs inside the caller's
transaction; rolling that transaction back also returns the number.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.models.common import utcnow
from app.models.invoice_counter import InvoiceCounter
from app.services.jalali import invoice_prefix

_LOG = logging.getLogger("app.invoice_sequencer")

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def format_invoice_code(prefix: str, seq: int) -> str:
    return f"{prefix}{int(seq):02d}"


def allocate_sequence(db: Session, ym_key: str) -> int:
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Invoice counter needs an upsert-capable database, got {dialect!r}")

    table = InvoiceCounter.__table__
    stmt = insert(table).values(ym_key=ym_key, seq=1)
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.ym_key],
        set_={"seq": table.c.seq + 1, "updated_at": utcnow()},
    ).returning(table.c.seq)
    return int(db.execute(stmt).scalar_one())


def next_invoice_code(db: Session, now: datetime | None = None) -> str:
    prefix = invoice_prefix(now or _now_utc())
    seq = allocate_sequence(db, prefix)
    code = format_invoice_code(prefix, seq)
    _LOG.info("allocated invoice code %s", code)
    return code
