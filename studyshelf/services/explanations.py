import logging

from flask import current_app

from studyshelf.extensions import db, atomic
from studyshelf.models.category import Category
from studyshelf.models.document import Document, Page
from studyshelf.models.explanation import Explanation
from studyshelf.services.errors import ExplanationValidationError, NotFoundError, ProviderError
from studyshelf.services.ocr import get_ocr
from studyshelf.services.pages import ocr_pages, pages_by_ids, pages_by_numbers
from studyshelf.services.providers import get_gateway
from studyshelf.utils.pool import map_in_order

logger = logging.getLogger(__name__)


def failure_placeholder(page_number, error, ocr_ok):
    status = "OCR was successful." if ocr_ok else "OCR failed."
    return f"AI processing failed for page {page_number}: {error}. {status}"


def _resolve_pages(user, page_ids, book_id, page_numbers):
    if page_ids:
        return pages_by_ids(user, page_ids)
    if book_id is not None and page_numbers:
        return pages_by_numbers(user, book_id, page_numbers)
    raise ExplanationValidationError("Either pageIds or bookId with pageNumbers is required")


def generate_explanations(user, category_id, page_ids=None, book_id=None, page_numbers=None,
                          ocr=None, gateway=None):
    """
    OCR each requested page and ask the category's model about it, one call
    per page. A page whose OCR or provider call fails still gets a row, with
    diagnostic text in place of the answer.

    Returns:
        {"explanations": [...], "category": {...}, "ocr_results": [...], "statistics": {...}}
    """
    config = current_app.config
    log = current_app.logger

    if category_id in (None, ""):
        raise ExplanationValidationError("Category ID is required")

    try:
        category = db.session.get(Category, int(category_id))
    except (TypeError, ValueError):
        raise ExplanationValidationError("Category ID must be an integer") from None
    if category is None:
        raise NotFoundError("Category not found")
    if category.prompt is None or not category.prompt.text.strip():
        raise ExplanationValidationError(f"Category {category.name!r} has no prompt configured")

    pages = _resolve_pages(user, page_ids, book_id, page_numbers)
    if not pages:
        raise NotFoundError("No pages found")

    instruction = category.prompt.text
    kind = category.model.provider_kind if category.model else None
    model = category.model.name if category.model else None
    ocr = ocr or get_ocr()
    gateway = gateway or get_gateway()
    workers = config.get("PAGE_WORKERS", 1)

    log.info(
        f"Generating explanations for {len(pages)} pages with category {category.name!r} "
        f"(model={model!r}, provider={kind.value if kind else 'auto'})"
    )

    ocr_results = ocr_pages(pages, ocr, workers=workers)

    # read page attributes on the request thread
    jobs = [(result, result.page.page_number) for result in ocr_results]

    def _explain(job):
        result, page_number = job
        text = result.text if result.ok else f"[OCR Error: {result.error}]"
        context = f"Page {page_number} content:\n{text}"
        try:
            return gateway.complete(context, instruction, kind=kind, model=model)
        except ProviderError as e:
            logger.warning("Explanation failed for page %s: %s", page_number, e)
            return failure_placeholder(page_number, e, result.ok)

    responses = map_in_order(_explain, jobs, workers=workers)

    with atomic():
        rows = []
        for result, response in zip(ocr_results, responses):
            row = Explanation(page_id=result.page.id, category_id=category.id, response_text=response)
            db.session.add(row)
            rows.append(row)

    ocr_ok = sum(1 for r in ocr_results if r.ok)
    log.info(f"Saved {len(rows)} explanations ({ocr_ok}/{len(ocr_results)} pages OCR'd)")
    return {
        "explanations": [row.to_dict() for row in rows],
        "category": category.to_dict(),
        "ocr_results": [r.to_dict() for r in ocr_results],
        "statistics": {
            "total_pages": len(ocr_results),
            "ocr_successful": ocr_ok,
            "ocr_failed": len(ocr_results) - ocr_ok,
            "explanations_created": len(rows),
        },
    }


def list_explanations(user, page_id=None, category_id=None):
    """Explanations on the caller's pages, newest first."""
    query = Explanation.query.join(Page).join(Document).filter(Document.user_id == user.id)
    if page_id is not None:
        query = query.filter(Explanation.page_id == page_id)
    if category_id is not None:
        query = query.filter(Explanation.category_id == category_id)
    return query.order_by(Explanation.created_at.desc(), Explanation.id.desc()).all()
