"""Write the enriched records back in their input shape."""

from __future__ import annotations

from pathlib import Path

from geofill.common.config_loader import FieldMapping
from geofill.common.fs import write_json
from geofill.common.models import Record


def record_to_row(record: Record, fields: FieldMapping) -> dict:
    if record.raw:
        row = dict(record.raw)
    else:
        row = {
            fields.id: record.record_id,
            fields.name: record.name,
            fields.addresses: [{fields.address_text: address} for address in record.addresses],
        }
    row[fields.latlng] = record.coordinate.to_latlng() if record.coordinate is not None else row.get(fields.latlng)
    return row


def write_records(path: Path, records: list[Record], fields: FieldMapping) -> Path:
    write_json(path, [record_to_row(record, fields) for record in records], sort_keys=False)
    return path
