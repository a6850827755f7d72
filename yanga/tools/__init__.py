"""
YANGA Tools - Export Helpers
"""

from .csv_export import ExportWriteFailure, export_csv, render_csv

__all__ = [
    'ExportWriteFailure',
    'export_csv',
    'render_csv',
]
