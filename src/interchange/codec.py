"""
Partner line format: tab-separated fields, dates as ``dd.mm.yyyy``.

Outbound lines carry installation, operand, start date, end date and
allocation unit, plus a trailing period field unless the operand is the
configured no-period operand. Inbound lines carry at least seven fields;
anything malformed raises ValidationError and rejects the whole file.
"""

from __future__ import annotations

import re
from datetime import date, datetime

from interchange.exceptions import ValidationError
from interchange.records import ImportedRecord, PendingRecord

FIELD_SEPARATOR = "\t"
PARTNER_DATE_FORMAT = "%d.%m.%Y"
MIN_INBOUND_FIELDS = 7

_PARTNER_DATE = re.compile(r"^\d{2}\.\d{2}\.\d{4}$")
# Decimal point only, no thousands separators, no exponent
_DECIMAL = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


def format_partner_date(value: date) -> str:
    return value.strftime(PARTNER_DATE_FORMAT)


def parse_partner_date(text: str) -> str:
    """
    Convert a partner ``DD.MM.YYYY`` date into ISO ``YYYY-MM-DD``.

    Raises:
        ValidationError: If the text does not match the pattern or is not a calendar date
    """
    text = text.strip()
    if not _PARTNER_DATE.match(text):
        raise ValidationError(f"Invalid date '{text}', expected DD.MM.YYYY")
    try:
        return datetime.strptime(text, PARTNER_DATE_FORMAT).date().isoformat()
    except ValueError as e:
        raise ValidationError(f"Invalid date '{text}': {e}") from e


def parse_unit_value(text: str) -> float:
    """
    Parse a consumption value written with a decimal point.

    Raises:
        ValidationError: On anything that is not a plain decimal number
    """
    text = text.strip()
    if not _DECIMAL.match(text):
        raise ValidationError(f"Invalid numeric value '{text}'")
    return float(text)


def encode_pending(record: PendingRecord, no_period_operand: str) -> str:
    """Encode one outbound record as a partner line (without line terminator)."""
    fields = [
        record.installation,
        record.operand,
        format_partner_date(record.start_date),
        format_partner_date(record.end_date),
        record.allocation_unit,
    ]
    if record.operand != no_period_operand:
        if not record.period:
            raise ValidationError(
                f"Record {record.record_id} for installation {record.installation}: "
                f"period is required for operand '{record.operand}'"
            )
        fields.append(record.period)

    for value in fields:
        if FIELD_SEPARATOR in value or "\n" in value or "\r" in value:
            raise ValidationError(
                f"Record {record.record_id} for installation {record.installation}: "
                f"field {value!r} contains a separator"
            )
    return FIELD_SEPARATOR.join(fields)


def decode_pending(line: str, no_period_operand: str) -> PendingRecord:
    """Parse an outbound line back into a PendingRecord (without record id)."""
    fields = line.rstrip("\r\n").split(FIELD_SEPARATOR)
    if len(fields) < 5:
        raise ValidationError(f"Expected at least 5 fields, got {len(fields)}")
    installation, operand, start, end, allocation_unit = fields[:5]
    expected = 5 if operand == no_period_operand else 6
    if len(fields) != expected:
        raise ValidationError(f"Operand '{operand}' expects {expected} fields, got {len(fields)}")
    return PendingRecord(
        installation=installation,
        operand=operand,
        start_date=date.fromisoformat(parse_partner_date(start)),
        end_date=date.fromisoformat(parse_partner_date(end)),
        allocation_unit=allocation_unit,
        period=fields[5] if expected == 6 else None,
    )


def decode_imported(line: str, *, source_file: str = "", line_number: int | None = None) -> ImportedRecord:
    """
    Parse one inbound line.

    Fields: bill period, account, installation, rate group, agreement id,
    reading date (DD.MM.YYYY), unit value. Extra trailing fields are ignored.

    Raises:
        ValidationError: On a short line, a bad date or a non-numeric value
    """
    fields = [f.strip() for f in line.rstrip("\r\n").split(FIELD_SEPARATOR)]
    if len(fields) < MIN_INBOUND_FIELDS:
        raise ValidationError(
            f"Expected at least {MIN_INBOUND_FIELDS} fields, got {len(fields)}",
            file_name=source_file or None,
            line_number=line_number,
        )
    try:
        reading_date = parse_partner_date(fields[5])
        unit_value = parse_unit_value(fields[6])
    except ValidationError as e:
        raise ValidationError(e.message, file_name=source_file or None, line_number=line_number) from e

    return ImportedRecord(
        bill_period=fields[0],
        account_id=fields[1],
        installation=fields[2],
        rate_group=fields[3],
        agreement_id=fields[4],
        reading_date=reading_date,
        unit_value=unit_value,
        source_file=source_file,
    )


def parse_inbound(text: str, file_name: str) -> list[ImportedRecord]:
    """
    Parse a whole inbound file. Empty lines are ignored; any bad line fails the file.
    """
    records = []
    for number, line in enumerate(text.split("\n"), start=1):
        if not line.strip():
            continue
        records.append(decode_imported(line, source_file=file_name, line_number=number))
    return records
