import logging
from dataclasses import dataclass
from typing import Optional

from studyshelf.extensions import db
from studyshelf.models.document import Document, Page
from studyshelf.services.errors import OcrError, ValidationError
from studyshelf.utils.pool import map_in_order

logger = logging.getLogger(__name__)


@dataclass
class PageText:
    """OCR outcome for one page; error is set when OCR failed."""
    page: Page
    text: str
    error: Optional[str] = None

    @property
    def ok(self):
        return self.error is None

    def to_dict(self):
        return {
            "page_id": self.page.id,
            "page_number": self.page.page_number,
            "status": "success" if self.ok else "failed",
            "text_length": len(self.text),
            "error": self.error,
        }


def split_page_ids(page_ids):
    """Separate numeric primary keys from unique_page_id strings."""
    numeric, unique = [], []
    for pid in page_ids:
        if isinstance(pid, bool):
            raise ValidationError(f"Invalid page id: {pid!r}")
        if isinstance(pid, int):
            numeric.append(pid)
        elif isinstance(pid, str) and pid.strip().isdigit():
            numeric.append(int(pid.strip()))
        elif isinstance(pid, str) and pid.strip():
            unique.append(pid.strip())
        else:
            raise ValidationError(f"Invalid page id: {pid!r}")
    return numeric, unique


def _owned_pages(user):
    return Page.query.join(Document).filter(Document.user_id == user.id)


def pages_by_ids(user, page_ids):
    numeric, unique = split_page_ids(page_ids)
    conditions = []
    if numeric:
        conditions.append(Page.id.in_(numeric))
    if unique:
        conditions.append(Page.unique_page_id.in_(unique))
    return (
        _owned_pages(user)
        .filter(db.or_(*conditions))
        .order_by(Page.document_id, Page.page_number)
        .all()
    )


def pages_by_numbers(user, book_id, page_numbers):
    try:
        numbers = [int(n) for n in page_numbers]
        book_id = int(book_id)
    except (TypeError, ValueError):
        raise ValidationError("bookId and pageNumbers must be integers") from None
    return (
        _owned_pages(user)
        .filter(Page.document_id == book_id, Page.page_number.in_(numbers))
        .order_by(Page.page_number)
        .all()
    )


def discover_pages(user, limit):
    """First pages of the user's documents that have an image URL."""
    return (
        _owned_pages(user)
        .filter(Page.image_url.isnot(None), Page.image_url != "")
        .order_by(Page.document_id, Page.page_number)
        .limit(limit)
        .all()
    )


def ocr_pages(pages, ocr, workers=1):
    """
    OCR every page independently. A failure on one page is recorded on its
    PageText and never stops the others. Results keep the input order.
    """
    total = len(pages)
    jobs = [(index, page, page.id, page.image_url, page.page_number) for index, page in enumerate(pages, start=1)]

    def _one(job):
        index, page, page_id, image_url, page_number = job
        logger.info("Processing page %d/%d - Page %s (ID: %s)", index, total, page_number, page_id)
        try:
            return PageText(page=page, text=ocr.extract(image_url, page_number))
        except OcrError as e:
            logger.warning("OCR failed for page %s: %s", page_number, e)
            return PageText(page=page, text="", error=str(e))

    return map_in_order(_one, jobs, workers=workers)
