import json
import logging
from datetime import date, datetime
from io import BytesIO
from typing import Any, Dict, List, Sequence
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from app.core.exceptions import IntakeError

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADER_FONT = Font(bold=True, color="FFFFFFFF")
HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF4472C4")
HEADER_ALIGNMENT = Alignment(vertical="center", horizontal="center")
MIN_COLUMN_WIDTH = 10
MAX_COLUMN_WIDTH = 50

# Columns holding comma-separated lists
ARRAY_FIELDS = {
    "properties": {"features", "amenities"},
    "launches": {"features", "amenities", "images"},
    "leads": {"preferredLocation"},
    "users": {"preferences.propertyTypes", "preferences.locations"},
}

# Columns holding JSON text (arrays of objects or whole sub-documents)
JSON_FIELDS = {
    "properties": {"images", "nearbyFacilities", "documents", "video", "virtualTour", "investment"},
    "users": {"preferences"},
    "leads": {"budget", "notes"},
    "launches": {"coordinates", "nearbyFacilities", "paymentPlans", "contactInfo"},
}

NUMERIC_FIELDS = {
    "price", "bedrooms", "bathrooms", "area", "floors", "parking",
    "startingPrice", "annualAppreciationRate",
}

# Digits-only values that must stay text
TEXT_FIELDS = {"phone", "password", "contactInfo.phone"}


# --- Template -> sheet ---
def flatten_record(record: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """
    {'location': {'city': 'Cairo'}} -> {'location.city': 'Cairo'}

    Lists of scalars are joined with ', ', lists of objects become JSON text,
    `_comment` keys and None values are dropped.
    """
    flat: Dict[str, Any] = {}
    for key, value in record.items():
        if key == "_comment" or value is None:
            continue
        column = f"{prefix}.{key}" if prefix else key

        if isinstance(value, list):
            if not value:
                flat[column] = ""
            elif isinstance(value[0], dict):
                flat[column] = json.dumps(value)
            else:
                flat[column] = ", ".join(str(item) for item in value)
        elif isinstance(value, dict):
            flat.update(flatten_record(value, column))
        else:
            flat[column] = value
    return flat


def build_workbook(records: Sequence[Dict[str, Any]], title: str = "Template") -> bytes:
    flattened = [flatten_record(record) for record in records]
    columns = sorted({column for row in flattened for column in row})

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title

    sheet.append(columns)
    for cell in sheet[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGNMENT

    for row in flattened:
        sheet.append([row.get(column, "") for column in columns])

    for index, column in enumerate(columns, start=1):
        longest = max(
            [len(column)] + [len(str(row[column])) for row in flattened if row.get(column) not in (None, "")]
        )
        width = max(longest, MIN_COLUMN_WIDTH)
        sheet.column_dimensions[get_column_letter(index)].width = min(width + 2, MAX_COLUMN_WIDTH)

    sheet.freeze_panes = "A2"

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


# --- Sheet -> records ---
def _to_number(value: str):
    try:
        number = float(value)
    except ValueError:
        return value
    return int(number) if number.is_integer() else number


def coerce_cell(entity: str, column: str, value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()

    leaf = column.rsplit(".", 1)[-1]

    if column in TEXT_FIELDS or leaf == "phone":
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value).strip()

    if not isinstance(value, str):
        return value

    text = value.strip()
    if column in ARRAY_FIELDS.get(entity, set()):
        return [item.strip() for item in text.split(",") if item.strip()]

    if column in JSON_FIELDS.get(entity, set()) and text[:1] in ("[", "{"):
        try:
            return json.loads(text)
        except ValueError:
            logger.warning(f"Column '{column}' holds invalid JSON, keeping raw text")
            return text

    if text.lower() in ("true", "false"):
        return text.lower() == "true"

    if leaf in NUMERIC_FIELDS or "." in column:
        return _to_number(text)

    return text


def unflatten_row(entity: str, row: Dict[str, Any]) -> Dict[str, Any]:
    """Rebuild a nested record from dot-notation columns; empty cells are dropped."""
    record: Dict[str, Any] = {}
    for column, value in row.items():
        if not column or value is None or (isinstance(value, str) and not value.strip()):
            continue
        value = coerce_cell(entity, column, value)

        target = record
        parts = column.split(".")
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            target = target[part]
        target[parts[-1]] = value
    return record


def parse_workbook(entity: str, content: bytes) -> List[Dict[str, Any]]:
    """Read the first sheet: header row of dot-notation columns, one record per row."""
    try:
        workbook = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, ValueError, OSError) as e:
        logger.warning(f"Rejected spreadsheet upload: {e}")
        raise IntakeError("Invalid Excel file. Upload an .xlsx built from the template")

    try:
        rows = workbook.active.iter_rows(values_only=True)
        header = next(rows, None)
        if not header:
            return []
        columns = [str(cell).strip() if cell is not None else "" for cell in header]

        records = []
        for values in rows:
            if all(value is None or (isinstance(value, str) and not value.strip()) for value in values):
                continue
            record = unflatten_row(entity, dict(zip(columns, values)))
            if record:
                records.append(record)
        return records
    finally:
        workbook.close()
