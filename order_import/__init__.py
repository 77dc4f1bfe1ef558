from .errors import ImportFileError, OcrError, StoreError
from .orchestrator import ImportOrchestrator, run_import, summarize
from .records import ImportReportEntry, NormalizedOrderFields

__all__ = [
    "ImportFileError",
    "ImportOrchestrator",
    "ImportReportEntry",
    "NormalizedOrderFields",
    "OcrError",
    "StoreError",
    "run_import",
    "summarize",
]
