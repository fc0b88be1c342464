# energygrid_aggregator/common/__init__.py

from energygrid_aggregator.common.file_io import EXPORT_ERRORS, ReportFileHandler
from energygrid_aggregator.common.logger import setup_logger

__all__: list[str] = [
    'EXPORT_ERRORS',
    'ReportFileHandler',
    'setup_logger',
]
