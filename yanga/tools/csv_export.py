"""
YANGA CSV Export - History to Spreadsheet

Writes the consumption history as a two-column CSV document:

    Goût,Horodatage
    Citron,2024-01-01T10:00:00.000Z

Failures are reported to the caller, never retried.
"""

import csv
import io
import logging
from pathlib import Path
from typing import Iterable, Sequence, Tuple

from yanga.config import CSV_HEADER
from yanga.memory.event_log import EventLog

logger = logging.getLogger(__name__)


class ExportWriteFailure(Exception):
    """Raised when the export target cannot be written"""
    pass


def _write_rows(handle, header: Sequence[str], rows: Iterable[Tuple[str, str]]) -> int:
    writer = csv.writer(handle, lineterminator="\r\n")
    writer.writerow(header)
    count = 0
    for row in rows:
        writer.writerow(row)
        count += 1
    return count


def render_csv(event_log: EventLog, header: Sequence[str] = CSV_HEADER) -> str:
    """
    Render history as a CSV string.

    Args:
        event_log: History to export
        header: Two column titles

    Returns:
        CSV document, header first, one row per event in order
    """
    buffer = io.StringIO()
    _write_rows(buffer, header, event_log.to_rows())
    return buffer.getvalue()


def export_csv(
    event_log: EventLog,
    path: Path,
    header: Sequence[str] = CSV_HEADER
) -> Path:
    """
    Write history to a CSV file, replacing any previous export.

    Args:
        event_log: History to export
        path: Target file (parent directories are created)
        header: Two column titles

    Returns:
        Path written

    Raises:
        ExportWriteFailure: If the target cannot be written
    """
    path = Path(path).expanduser()

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8', newline='') as f:
            count = _write_rows(f, header, event_log.to_rows())
    except OSError as e:
        logger.error(f"CSV export failed: {e}")
        raise ExportWriteFailure(f"Cannot write export to {path}: {e}") from e

    logger.info(f"Exported {count} events to {path}")
    return path
