# order_import/errors.py
from __future__ import annotations


class ImportFileError(Exception):
    """The uploaded file as a whole cannot be imported (no record was processed)."""


class OcrError(Exception):
    pass


class StoreError(Exception):
    pass
