# order_import/adapters.py
"""
Format adapters: uploaded bytes -> list of ImportRecord (source label -> raw value).

Formats form a closed set (FileFormat). Delimited text and spreadsheets use
their first row as headers and yield one record per row; documents (PDF and
page images) go through OCR and yield exactly one record.
"""
from __future__ import annotations

import io
import logging
import os
from decimal import Decimal
from enum import Enum

import pandas as pd

from .errors import ImportFileError, OcrError
from .ocr import OcrClient, PDF_MIME
from .text_extract import extract_fields

log = logging.getLogger(__name__)


class FileFormat(Enum):
    DELIMITED = "delimited"
    SPREADSHEET = "spreadsheet"
    DOCUMENT = "document"


EXTENSION_FORMATS = {
    ".csv": FileFormat.DELIMITED,
    ".tsv": FileFormat.DELIMITED,
    ".txt": FileFormat.DELIMITED,
    ".xlsx": FileFormat.SPREADSHEET,
    ".xls": FileFormat.SPREADSHEET,
    ".pdf": FileFormat.DOCUMENT,
    ".png": FileFormat.DOCUMENT,
    ".jpg": FileFormat.DOCUMENT,
    ".jpeg": FileFormat.DOCUMENT,
    ".tif": FileFormat.DOCUMENT,
    ".tiff": FileFormat.DOCUMENT,
}

CONTENT_TYPE_FORMATS = {
    "text/csv": FileFormat.DELIMITED,
    "text/tab-separated-values": FileFormat.DELIMITED,
    "application/vnd.ms-excel": FileFormat.SPREADSHEET,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": FileFormat.SPREADSHEET,
    PDF_MIME: FileFormat.DOCUMENT,
    "image/png": FileFormat.DOCUMENT,
    "image/jpeg": FileFormat.DOCUMENT,
    "image/tiff": FileFormat.DOCUMENT,
}

DOCUMENT_MIMES = {
    ".pdf": PDF_MIME,
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}

_DELIMITERS = (";", ",", "\t", "|")


def detect_format(filename: str, content_type: str | None = None) -> FileFormat:
    """Extension first, declared content type second; anything else is unsupported."""
    ext = os.path.splitext(str(filename or ""))[1].lower()
    if ext in EXTENSION_FORMATS:
        return EXTENSION_FORMATS[ext]
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype in CONTENT_TYPE_FORMATS:
        return CONTENT_TYPE_FORMATS[ctype]
    raise ImportFileError(f"Unsupported file type: {filename or ctype or 'unknown'}")


def document_mime(filename: str, content_type: str | None = None) -> str:
    ext = os.path.splitext(str(filename or ""))[1].lower()
    return DOCUMENT_MIMES.get(ext) or (content_type or PDF_MIME).split(";")[0].strip().lower()


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _guess_delimiter(text: str) -> str:
    header = text.split("\n", 1)[0]
    counts = {d: header.count(d) for d in _DELIMITERS}
    best = max(counts, key=counts.get)
    return best if counts[best] else ","


def _cell(value):
    # typed workbook cells: whole numbers as digits, fractions as exact Decimal
    # so a 2.125 cell never reaches the "1.234 means thousands" text heuristic
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else Decimal(repr(value))
    return str(value)


class TabularAdapter:
    def __init__(self, fmt: FileFormat):
        self.fmt = fmt

    def _frame(self, data: bytes) -> pd.DataFrame:
        if self.fmt is FileFormat.SPREADSHEET:
            df = pd.read_excel(io.BytesIO(data), sheet_name=0, dtype=object)
            return df.map(_cell)
        text = _decode(data)
        return pd.read_csv(
            io.StringIO(text),
            sep=_guess_delimiter(text),
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
        )

    def read(self, data: bytes, mime: str | None = None) -> list[dict]:
        try:
            df = self._frame(data)
        except Exception as e:
            raise ImportFileError(f"Could not read {self.fmt.value} file: {e}") from e

        df.columns = [str(c).replace("\xa0", " ").strip() for c in df.columns]
        if self.fmt is not FileFormat.SPREADSHEET:
            df = df.fillna("").astype(str)
        if len(df.columns):
            non_blank = df.apply(lambda col: col.map(lambda v: str(v).strip() != "")).any(axis=1)
            df = df[non_blank].reset_index(drop=True)

        log.info("[TABLE] %s rows=%d cols=%d", self.fmt.value, len(df), len(df.columns))
        return df.to_dict(orient="records")


class DocumentAdapter:
    def __init__(self, ocr: OcrClient):
        self.ocr = ocr

    def read(self, data: bytes, mime: str | None = None) -> list[dict]:
        try:
            text = self.ocr.extract_text(data, mime or PDF_MIME)
        except OcrError as e:
            raise ImportFileError(str(e)) from e
        if not (text or "").strip():
            raise ImportFileError("No text could be extracted from the document.")
        # one document = one service order
        return [extract_fields(text)]


def adapter_for(fmt: FileFormat, *, ocr: OcrClient | None = None):
    if fmt is FileFormat.DOCUMENT:
        if ocr is None:
            raise ImportFileError("Document import needs an OCR service, none is configured.")
        return DocumentAdapter(ocr)
    return TabularAdapter(fmt)
