"""CSV export of prediction records."""

from __future__ import annotations

import csv
import io
from typing import Iterable

from models.records import PredictionRecord

EXPORT_COLUMNS = ("timestamp", "device_id", "location_id", "lock_status", "prediction")
EXPORT_FILENAME = "predictions.csv"


def records_to_csv(records: Iterable[PredictionRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for record in records:
        writer.writerow(
            (
                record.timestamp,
                record.device_id,
                record.location_id,
                record.lock_status.value,
                record.prediction,
            )
        )
    return buffer.getvalue()
