"""ChangeRecord ORM model: a product change notice ("fiche de suivi")."""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from suivi.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChangeRecord(Base):
    __tablename__ = "change_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(100), nullable=False, unique=True)
    product_line = Column(String(150), nullable=False, index=True)
    model = Column(String(150), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    affected_serials = Column(Text, nullable=True)
    supplier = Column(String(255), nullable=True)
    subassembly = Column(String(255), nullable=True)
    component = Column(String(255), nullable=True)
    validated_on = Column(Date, nullable=True)
    in_production_since = Column(Date, nullable=True)
    sheet_part_name = Column(String(255), nullable=True)
    external_code = Column(String(100), nullable=True, index=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    creator = relationship("User")
    attachments = relationship(
        "Attachment",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="Attachment.id",
    )
    purchases = relationship(
        "PurchaseEntry",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="(PurchaseEntry.created_at.desc(), PurchaseEntry.id.desc())",
    )
