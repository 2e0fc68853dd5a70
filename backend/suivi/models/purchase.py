"""PurchaseEntry ORM model: a temporary purchasing arrangement under a ChangeRecord."""
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Numeric, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from suivi.database import Base


class PurchaseStatus(str, enum.Enum):
    in_progress = "InProgress"
    done = "Done"
    cancelled = "Cancelled"


class PurchaseEntry(Base):
    __tablename__ = "purchase_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_id = Column(Integer, ForeignKey("change_records.id"), nullable=False, index=True)
    designation = Column(String(255), nullable=False)
    supplier = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=True)
    unit_price = Column(Numeric(12, 2), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    reason = Column(Text, nullable=True)
    status = Column(SAEnum(PurchaseStatus), nullable=False, default=PurchaseStatus.in_progress)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    record = relationship("ChangeRecord", back_populates="purchases")
