"""One-shot import of the legacy change-tracking spreadsheet.

Expected columns on the first sheet (row 1 is the header):
    ID, Publication, Technical family, Product, Subassembly, Component, Code,
    Characteristic/Modification, Supplier, Validated R&D, In production,
    On unit #, Comments

Rows without a code are skipped. Existing references are updated in place;
new ones are created and owned by the ``admin`` account.

Usage:
    python -m suivi.importer SuiviProduits.xlsx
"""
import argparse
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.datetime import from_excel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from suivi.database import Base, SessionLocal, engine
from suivi.log_config import setup_logging
from suivi.models.record import ChangeRecord
from suivi.models.user import User

# Imported for Base.metadata
from suivi.models.attachment import Attachment       # noqa: F401
from suivi.models.purchase import PurchaseEntry      # noqa: F401

logger = logging.getLogger(__name__)

DEFAULT_PRODUCT_LINE = "Non classé"
DEFAULT_MODEL = "Général"
TITLE_MAX_LEN = 200

COL_FAMILY, COL_PRODUCT, COL_SUBASSEMBLY, COL_COMPONENT, COL_CODE = 2, 3, 4, 5, 6
COL_CHARACTERISTIC, COL_SUPPLIER, COL_VALIDATED, COL_IN_PRODUCTION = 7, 8, 9, 10
COL_SERIALS, COL_COMMENTS = 11, 12


@dataclass
class ImportReport:
    imported: int = 0
    skipped: int = 0
    errors: int = 0
    failed_rows: list[int] = field(default_factory=list)


def clean_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_date(value: Any) -> Optional[date]:
    """Accept native dates/datetimes and Excel serial numbers."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        converted = from_excel(value)
        return converted.date() if isinstance(converted, datetime) else converted
    return None


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def map_row(row: Sequence[Any]) -> Optional[dict[str, Any]]:
    """Turn a spreadsheet row into record fields, or None if it has no code."""
    code = clean_value(_cell(row, COL_CODE))
    if not code:
        return None

    subassembly = clean_value(_cell(row, COL_SUBASSEMBLY))
    component = clean_value(_cell(row, COL_COMPONENT))
    characteristic = clean_value(_cell(row, COL_CHARACTERISTIC))
    supplier = clean_value(_cell(row, COL_SUPPLIER))
    validated_on = to_date(_cell(row, COL_VALIDATED))
    in_production_since = to_date(_cell(row, COL_IN_PRODUCTION))
    comments = clean_value(_cell(row, COL_COMMENTS))

    title = characteristic or component or subassembly or "Modification"
    if supplier and supplier not in title:
        title += f" ({supplier})"

    lines = []
    if subassembly:
        lines.append(f"Sous-ensemble: {subassembly}")
    if component:
        lines.append(f"Organe: {component}")
    if characteristic:
        lines.append(f"Caractéristique: {characteristic}")
    if supplier:
        lines.append(f"Fournisseur: {supplier}")
    if validated_on:
        lines.append(f"Validée R&D: {validated_on:%d/%m/%Y}")
    if in_production_since:
        lines.append(f"En fabrication: {in_production_since:%d/%m/%Y}")
    description = "\n".join(lines)
    if comments:
        description = f"{description}\n\n{comments}" if description else comments

    return {
        "reference": code,
        "product_line": clean_value(_cell(row, COL_FAMILY)) or DEFAULT_PRODUCT_LINE,
        "model": clean_value(_cell(row, COL_PRODUCT)) or DEFAULT_MODEL,
        "title": title[:TITLE_MAX_LEN],
        "description": description.strip() or None,
        "affected_serials": clean_value(_cell(row, COL_SERIALS)),
        "supplier": supplier,
        "subassembly": subassembly,
        "component": component,
        "validated_on": validated_on,
        "in_production_since": in_production_since,
    }


def import_rows(db: Session, rows: Iterable[Sequence[Any]], owner: User) -> ImportReport:
    """Upsert records from data rows (header already removed)."""
    report = ImportReport()
    for line_no, row in enumerate(rows, start=2):
        data = map_row(row)
        if data is None:
            report.skipped += 1
            continue
        try:
            record = db.query(ChangeRecord).filter(ChangeRecord.reference == data["reference"]).first()
            if record:
                for key, value in data.items():
                    setattr(record, key, value)
                record.updated_at = datetime.now(timezone.utc)
            else:
                db.add(ChangeRecord(**data, creator_id=owner.id))
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Row %d (%s) failed: %s", line_no, data["reference"], exc)
            report.errors += 1
            report.failed_rows.append(line_no)
            continue

        report.imported += 1
        if report.imported % 20 == 0:
            logger.info("%d records imported...", report.imported)
    return report


def import_workbook(db: Session, path: Path, owner_login: str = "admin") -> ImportReport:
    owner = db.query(User).filter(User.login == owner_login).first()
    if not owner:
        raise LookupError(f"Owner account '{owner_login}' not found; run `python -m suivi.seed` first")

    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(min_row=2, values_only=True)
        return import_rows(db, rows, owner)
    finally:
        workbook.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import change records from an .xlsx file.")
    parser.add_argument("path", type=Path, help="spreadsheet to import")
    parser.add_argument("--owner", default="admin", help="login that will own new records")
    args = parser.parse_args(argv)

    setup_logging()
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        report = import_workbook(db, args.path, owner_login=args.owner)
    except LookupError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        db.close()

    print("=== Import finished ===")
    print(f"Records imported: {report.imported}")
    print(f"Rows skipped (no code): {report.skipped}")
    print(f"Errors: {report.errors}")
    return 0 if report.errors == 0 else 2


if __name__ == "__main__":
    raise SystemExit(main())
