"""ChangeRecord API routes: delegates to record_service for invariant enforcement."""
import logging
import math
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from suivi.database import get_db
from suivi.deps import get_storage, require_read, require_write
from suivi.models.user import User
from suivi.schemas.purchase import PurchaseCreate, PurchaseOut, PurchaseUpdate
from suivi.schemas.record import FilterValues, RecordCreate, RecordOut, RecordPage, RecordUpdate
from suivi.services import record_service
from suivi.storage import LocalFileStorage

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=RecordPage)
def list_records(
    product_line: Optional[str] = Query(None),
    model: Optional[str] = Query(None),
    external_code: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    _: User = Depends(require_read),
):
    """List records with optional exact filters and free-text search, newest first."""
    filters = record_service.RecordFilter(
        product_line=product_line,
        model=model,
        external_code=external_code,
        search=search,
    )
    records, total = record_service.list_records(db, filters, page=page, page_size=limit)
    return {
        "data": records,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit),
        },
    }


@router.get("/filters", response_model=FilterValues)
def filter_values(db: Session = Depends(get_db), _: User = Depends(require_read)):
    """Distinct product lines, models and external codes for the filter dropdowns."""
    return record_service.distinct_filter_values(db)


@router.get("/{record_id}", response_model=RecordOut)
def get_record(record_id: int, db: Session = Depends(get_db), _: User = Depends(require_read)):
    """Fetch one record with creator, attachments and purchases."""
    return record_service.get_record(db, record_id)


@router.post("/", response_model=RecordOut, status_code=status.HTTP_201_CREATED)
def create_record(
    payload: RecordCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_write),
):
    """Create a record owned by the caller."""
    return record_service.create_record(db, payload.model_dump(), creator=user)


@router.put("/{record_id}", response_model=RecordOut)
def update_record(
    record_id: int,
    payload: RecordUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_write),
):
    """Partial update: omitted fields are kept, explicit nulls clear optional fields."""
    return record_service.update_record(db, record_id, payload.model_dump(exclude_unset=True))


@router.delete("/{record_id}")
def delete_record(
    record_id: int,
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
    _: User = Depends(require_write),
):
    """Delete a record together with its attachments and purchases."""
    record_service.delete_record(db, record_id, storage)
    return {"message": "Record deleted"}


# ── Purchases ───────────────────────────────────────────────────────


@router.post("/{record_id}/purchases", response_model=PurchaseOut, status_code=status.HTTP_201_CREATED)
def add_purchase(
    record_id: int,
    payload: PurchaseCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_write),
):
    return record_service.add_purchase(db, record_id, payload.model_dump())


@router.put("/{record_id}/purchases/{purchase_id}", response_model=PurchaseOut)
def update_purchase(
    record_id: int,
    purchase_id: int,
    payload: PurchaseUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_write),
):
    return record_service.update_purchase(
        db, record_id, purchase_id, payload.model_dump(exclude_unset=True)
    )


@router.delete("/{record_id}/purchases/{purchase_id}")
def remove_purchase(
    record_id: int,
    purchase_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_write),
):
    record_service.remove_purchase(db, record_id, purchase_id)
    return {"message": "Purchase deleted"}
