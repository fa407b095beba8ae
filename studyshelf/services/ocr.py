import logging
from dataclasses import dataclass

import pytesseract
from flask import current_app

from studyshelf.services.errors import OcrError
from studyshelf.utils.image_utils import load_image, prepare_for_ocr

logger = logging.getLogger(__name__)


@dataclass
class OcrConfig:
    lang: str = "eng"
    tesseract_cmd: str = ""
    timeout: int = 60

    @classmethod
    def from_mapping(cls, config):
        return cls(
            lang=config.get("OCR_LANG", "eng"),
            tesseract_cmd=config.get("TESSERACT_CMD", ""),
            timeout=config.get("DOWNLOAD_TIMEOUT", 60),
        )


class OcrExtractor:
    """Tesseract wrapper returning the trimmed text of one page image."""

    def __init__(self, config: OcrConfig):
        self.config = config
        if config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = config.tesseract_cmd

    def extract(self, image_source, page_number):
        logger.info("[OCR] Page %s - starting (%s)", page_number, image_source)
        try:
            img = prepare_for_ocr(load_image(image_source, timeout=self.config.timeout))
            text = pytesseract.image_to_string(img, lang=self.config.lang)
        except Exception as e:
            logger.error("[OCR] Page %s - failed: %s", page_number, e)
            raise OcrError(page_number, str(e)) from e

        text = (text or "").strip()
        logger.info("[OCR] Page %s - extracted %d characters", page_number, len(text))
        logger.debug("[OCR] Page %s preview: %r", page_number, text[:100])
        return text


def get_ocr():
    return OcrExtractor(OcrConfig.from_mapping(current_app.config))
