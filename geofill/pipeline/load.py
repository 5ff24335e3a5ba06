"""Record loading from the source JSON list."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from geofill.common.config_loader import FieldMapping
from geofill.common.errors import DataError
from geofill.common.fs import read_json
from geofill.common.models import Coordinate, Record


def parse_latlng(value: Any) -> Coordinate | None:
    """Parse the combined ``"lat, lng"`` field; blank means no coordinate."""
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        parts = [part.strip() for part in text.split(",")]
        if len(parts) != 2:
            raise DataError(f"Unparseable coordinate: {value!r}")
        try:
            return Coordinate(lat=float(parts[0]), lng=float(parts[1]))
        except ValueError as exc:
            raise DataError(f"Unparseable coordinate: {value!r}") from exc
    raise DataError(f"Unsupported coordinate value: {value!r}")


def _address_candidates(value: Any, address_text: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        values: list[Any] = [value]
    elif isinstance(value, list):
        values = value
    else:
        raise DataError(f"Unsupported address value: {value!r}")

    out = []
    for entry in values:
        if isinstance(entry, dict):
            entry = entry.get(address_text)
        if entry is None:
            continue
        text = str(entry).strip()
        if text:
            out.append(text)
    return tuple(out)


def record_from_row(row: dict, fields: FieldMapping) -> Record:
    if not isinstance(row, dict):
        raise DataError(f"Record rows must be objects, got {type(row).__name__}")
    record_id = row.get(fields.id)
    if record_id is None or str(record_id).strip() == "":
        raise DataError(f"Record is missing its id field {fields.id!r}")
    return Record(
        record_id=str(record_id),
        name=str(row.get(fields.name) or ""),
        addresses=_address_candidates(row.get(fields.addresses), fields.address_text),
        coordinate=parse_latlng(row.get(fields.latlng)),
        raw=dict(row),
    )


def load_records(path: Path, fields: FieldMapping) -> list[Record]:
    if not path.exists():
        raise DataError(f"Input file not found: {path}")
    try:
        payload = read_json(path)
    except ValueError as exc:
        raise DataError(f"Input file is not valid JSON: {path}") from exc
    if not isinstance(payload, list):
        raise DataError("Input file must contain a JSON list of records")
    return [record_from_row(row, fields) for row in payload]
