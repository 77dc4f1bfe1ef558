# order_import/ocr.py
"""
OCR collaborator: extract_text(data, mime) -> full document text.

Two backends:
  - TesseractOcr: text layer via pdfplumber first; scanned pages go through
    poppler (pdf2image) + Tesseract. Images are OCR'd directly.
  - VisionOcr: Google Cloud Vision DOCUMENT_TEXT_DETECTION over REST.
Both raise OcrError when the service itself fails. An empty string means the
document was read but carries no text.
"""
from __future__ import annotations

import base64
import io
import logging
import os

import requests

from .errors import OcrError

log = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
TIFF_MIMES = {"image/tiff", "image/tif"}


class OcrClient:
    def extract_text(self, data: bytes, mime: str) -> str:
        raise NotImplementedError


class TesseractOcr(OcrClient):
    def __init__(self, *, poppler_bin: str | None = None, tesseract_exe: str | None = None,
                 lang: str = "por+eng", dpi: int = 300):
        self.poppler_bin = poppler_bin if poppler_bin and os.path.isdir(poppler_bin) else None
        self.tesseract_exe = tesseract_exe if tesseract_exe and os.path.exists(tesseract_exe) else None
        self.lang = lang
        self.dpi = dpi
        self.tesseract_cfg = r"--oem 3 --psm 6"

    def extract_text(self, data: bytes, mime: str) -> str:
        if mime == PDF_MIME:
            text = self._pdf_text_layer(data)
            if text.strip():
                log.info("[PDF] text layer found, chars=%d", len(text))
                return text
            return self._ocr_pdf(data)
        return self._ocr_image(data)

    # ---------- A) TEXT-PDF ----------
    def _pdf_text_layer(self, data: bytes) -> str:
        try:
            import pdfplumber
        except ImportError as e:
            raise OcrError(f"pdfplumber is not available: {e}") from e

        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                pages = [(page.extract_text() or "") for page in pdf.pages]
        except Exception as e:
            # scanned or slightly broken PDFs still get a chance through OCR
            log.warning("[PDF] text-parse failed: %s", e)
            return ""
        return "\n".join(p for p in pages if p.strip())

    # ---------- B) OCR ----------
    def _tesseract(self):
        try:
            import pytesseract
        except ImportError as e:
            raise OcrError(f"pytesseract is not available: {e}") from e

        if self.tesseract_exe:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_exe
        return pytesseract

    def _ocr_pdf(self, data: bytes) -> str:
        try:
            from pdf2image import convert_from_bytes
        except ImportError as e:
            raise OcrError(f"pdf2image is not available: {e}") from e

        pytesseract = self._tesseract()
        try:
            images = convert_from_bytes(data, dpi=self.dpi, poppler_path=self.poppler_bin)
        except Exception as e:
            raise OcrError(f"OCR init failed: {e}") from e
        log.info("[OCR] pages=%d poppler_bin=%s", len(images), self.poppler_bin)

        chunks = []
        for idx, img in enumerate(images, start=1):
            try:
                chunks.append(pytesseract.image_to_string(img, lang=self.lang, config=self.tesseract_cfg))
            except pytesseract.TesseractNotFoundError as e:
                raise OcrError(f"Tesseract is not installed: {e}") from e
            except Exception as e:
                log.warning("[OCR] page %d failed: %s", idx, e)
        return "\n".join(chunks)

    def _ocr_image(self, data: bytes) -> str:
        try:
            from PIL import Image, UnidentifiedImageError
        except ImportError as e:
            raise OcrError(f"Pillow is not available: {e}") from e

        pytesseract = self._tesseract()
        try:
            img = Image.open(io.BytesIO(data))
        except (UnidentifiedImageError, OSError) as e:
            raise OcrError(f"Unreadable image: {e}") from e
        try:
            return pytesseract.image_to_string(img, lang=self.lang, config=self.tesseract_cfg)
        except Exception as e:
            raise OcrError(f"Tesseract failed: {e}") from e


class VisionOcr(OcrClient):
    BASE_URL = "https://vision.googleapis.com/v1"

    def __init__(self, api_key: str, *, timeout: float = 60, session: requests.Session | None = None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def extract_text(self, data: bytes, mime: str) -> str:
        if not self.api_key:
            raise OcrError("GOOGLE_CLOUD_VISION_API_KEY is not set.")

        content = base64.b64encode(data).decode("ascii")
        features = [{"type": "DOCUMENT_TEXT_DETECTION"}]
        if mime == PDF_MIME or mime in TIFF_MIMES:
            url = f"{self.BASE_URL}/files:annotate"
            body = {"requests": [{"inputConfig": {"mimeType": mime, "content": content}, "features": features}]}
        else:
            url = f"{self.BASE_URL}/images:annotate"
            body = {"requests": [{"image": {"content": content}, "features": features}]}

        try:
            resp = self.session.post(url, params={"key": self.api_key}, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise OcrError(f"Google Cloud Vision request failed: {e}") from e

        if not resp.ok:
            try:
                detail = resp.json().get("error", {}).get("message") or resp.reason
            except ValueError:
                detail = resp.reason
            raise OcrError(f"Google Cloud Vision API failed: {detail}")

        try:
            return "\n".join(self._texts(resp.json()))
        except (ValueError, AttributeError, TypeError) as e:
            raise OcrError(f"Google Cloud Vision returned an invalid response: {e}") from e

    @staticmethod
    def _texts(payload: dict):
        # files:annotate nests page responses one level deeper than images:annotate
        for res in payload.get("responses", []):
            pages = res.get("responses", [res])
            for page in pages:
                if page.get("error"):
                    raise OcrError(f"Google Cloud Vision API failed: {page['error'].get('message', '')}")
                text = (page.get("fullTextAnnotation") or {}).get("text")
                if text:
                    yield text


def ocr_from_config(cfg) -> OcrClient:
    backend = (cfg.get("OCR_BACKEND") or "tesseract").strip().lower()
    if backend == "vision":
        return VisionOcr(cfg.get("GOOGLE_CLOUD_VISION_API_KEY", ""), timeout=cfg.get("OCR_TIMEOUT", 60))
    return TesseractOcr(
        poppler_bin=cfg.get("POPPLER_BIN"),
        tesseract_exe=cfg.get("TESSERACT_EXE"),
        lang=cfg.get("TESSERACT_LANG", "por+eng"),
    )
