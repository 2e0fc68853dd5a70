"""Record repository: query surface and write path for ChangeRecords.

Responsibilities:
- Filtered, paginated listing ordered most-recently-touched first
- Reference uniqueness (friendly pre-check, store constraint as the real guard)
- Partial updates that distinguish omitted fields from explicit nulls
- Children-first delete cascade to attachments (disk + rows) and purchases
- Purchase sub-records scoped to their parent record
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from suivi.database import is_unique_violation
from suivi.errors import DuplicateReference, InternalError, NotFound, ValidationError
from suivi.models.attachment import Attachment
from suivi.models.purchase import PurchaseEntry
from suivi.models.record import ChangeRecord
from suivi.models.user import User
from suivi.storage import LocalFileStorage

logger = logging.getLogger(__name__)

_SEARCH_COLUMNS = (
    ChangeRecord.reference,
    ChangeRecord.title,
    ChangeRecord.description,
    ChangeRecord.external_code,
    ChangeRecord.sheet_part_name,
)


@dataclass
class RecordFilter:
    product_line: Optional[str] = None
    model: Optional[str] = None
    external_code: Optional[str] = None
    search: Optional[str] = None


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _get_or_404(db: Session, record_id: int) -> ChangeRecord:
    record = db.query(ChangeRecord).filter(ChangeRecord.id == record_id).first()
    if not record:
        raise NotFound("Record not found")
    return record


def _touch(record: ChangeRecord) -> None:
    record.updated_at = datetime.now(timezone.utc)


def _commit_unique(db: Session) -> None:
    """Commit, mapping a unique violation on reference to DuplicateReference."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if is_unique_violation(exc):
            raise DuplicateReference()
        logger.exception("Record write rejected by the store")
        raise InternalError("Record could not be saved")


# ── Queries ─────────────────────────────────────────────────────────


def list_records(
    db: Session,
    filters: RecordFilter,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[ChangeRecord], int]:
    """Return one page of records plus the total count matching ``filters``."""
    if page < 1 or page_size < 1:
        raise ValidationError("page and limit must be positive integers")

    query = db.query(ChangeRecord)
    if filters.product_line:
        query = query.filter(ChangeRecord.product_line == filters.product_line)
    if filters.model:
        query = query.filter(ChangeRecord.model == filters.model)
    if filters.external_code:
        query = query.filter(ChangeRecord.external_code == filters.external_code)
    if filters.search and filters.search.strip():
        pattern = f"%{_escape_like(filters.search.strip())}%"
        query = query.filter(or_(*(col.ilike(pattern, escape="\\") for col in _SEARCH_COLUMNS)))

    total = query.count()
    records = (
        query.options(joinedload(ChangeRecord.creator), selectinload(ChangeRecord.attachments))
        .order_by(ChangeRecord.updated_at.desc(), ChangeRecord.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return records, total


def distinct_filter_values(db: Session) -> dict[str, list[str]]:
    """Sorted, de-duplicated values for the three exact-match filters."""

    def _distinct(column) -> list[str]:
        rows = db.query(column).filter(column.isnot(None), column != "").distinct().order_by(column).all()
        return [value for (value,) in rows]

    return {
        "product_lines": _distinct(ChangeRecord.product_line),
        "models": _distinct(ChangeRecord.model),
        "external_codes": _distinct(ChangeRecord.external_code),
    }


def get_record(db: Session, record_id: int) -> ChangeRecord:
    """Full record with creator, attachments and purchases."""
    record = (
        db.query(ChangeRecord)
        .options(
            joinedload(ChangeRecord.creator),
            selectinload(ChangeRecord.attachments),
            selectinload(ChangeRecord.purchases),
        )
        .filter(ChangeRecord.id == record_id)
        .first()
    )
    if not record:
        raise NotFound("Record not found")
    return record


# ── Record writes ───────────────────────────────────────────────────


def create_record(db: Session, data: dict[str, Any], creator: User) -> ChangeRecord:
    """Create a record owned by ``creator``; reference must be unused."""
    if db.query(ChangeRecord.id).filter(ChangeRecord.reference == data["reference"]).first():
        raise DuplicateReference()

    record = ChangeRecord(**data, creator_id=creator.id)
    db.add(record)
    _commit_unique(db)
    logger.info("Created record %s (%s) by user %s", record.id, record.reference, creator.id)
    return get_record(db, record.id)


def update_record(db: Session, record_id: int, updates: dict[str, Any]) -> ChangeRecord:
    """Apply a partial update. ``updates`` holds only the fields the client sent."""
    record = _get_or_404(db, record_id)

    new_reference = updates.get("reference")
    if new_reference and new_reference != record.reference:
        clash = db.query(ChangeRecord.id).filter(ChangeRecord.reference == new_reference).first()
        if clash:
            raise DuplicateReference()

    for field, value in updates.items():
        if field in ("id", "creator_id", "created_at", "updated_at"):
            continue
        setattr(record, field, value)
    _touch(record)

    _commit_unique(db)
    logger.info("Updated record %s (fields: %s)", record_id, ", ".join(sorted(updates)) or "none")
    db.expire_all()
    return get_record(db, record_id)


def delete_record(db: Session, record_id: int, storage: LocalFileStorage) -> None:
    """Delete a record and everything it owns, children first.

    Files are removed before rows; a missing file is tolerated. A failure
    part-way through is reported as InternalError and is not retried: the
    record row stays in place so the delete can be re-issued.
    """
    record = _get_or_404(db, record_id)
    reference = record.reference
    attachments = db.query(Attachment).filter(Attachment.record_id == record_id).all()

    try:
        for attachment in attachments:
            storage.delete(attachment.stored_name)

        db.query(Attachment).filter(Attachment.record_id == record_id).delete(synchronize_session=False)
        db.query(PurchaseEntry).filter(PurchaseEntry.record_id == record_id).delete(synchronize_session=False)
        db.flush()
        db.expire(record, ["attachments", "purchases"])
        db.delete(record)
        db.commit()
    except (OSError, SQLAlchemyError):
        db.rollback()
        logger.exception("Cascade delete of record %s failed part-way", record_id)
        raise InternalError("Record deletion failed")

    logger.info(
        "Deleted record %s (%s) with %d attachment(s)", record_id, reference, len(attachments)
    )


# ── Purchase sub-records ────────────────────────────────────────────


def _get_purchase_or_404(db: Session, record_id: int, purchase_id: int) -> PurchaseEntry:
    purchase = (
        db.query(PurchaseEntry)
        .filter(PurchaseEntry.id == purchase_id, PurchaseEntry.record_id == record_id)
        .first()
    )
    if not purchase:
        raise NotFound("Purchase not found")
    return purchase


def add_purchase(db: Session, record_id: int, data: dict[str, Any]) -> PurchaseEntry:
    record = _get_or_404(db, record_id)
    purchase = PurchaseEntry(record_id=record_id, **data)
    db.add(purchase)
    _touch(record)
    db.commit()
    db.refresh(purchase)
    logger.info("Added purchase %s to record %s", purchase.id, record_id)
    return purchase


def update_purchase(
    db: Session, record_id: int, purchase_id: int, updates: dict[str, Any]
) -> PurchaseEntry:
    record = _get_or_404(db, record_id)
    purchase = _get_purchase_or_404(db, record_id, purchase_id)

    for field, value in updates.items():
        setattr(purchase, field, value)

    if purchase.start_date and purchase.end_date and purchase.end_date < purchase.start_date:
        db.rollback()
        raise ValidationError("end_date must not be before start_date")

    _touch(record)
    db.commit()
    db.refresh(purchase)
    logger.info("Updated purchase %s of record %s", purchase_id, record_id)
    return purchase


def remove_purchase(db: Session, record_id: int, purchase_id: int) -> None:
    record = _get_or_404(db, record_id)
    purchase = _get_purchase_or_404(db, record_id, purchase_id)
    db.delete(purchase)
    _touch(record)
    db.commit()
    logger.info("Removed purchase %s from record %s", purchase_id, record_id)
