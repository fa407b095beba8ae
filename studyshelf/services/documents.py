import os

from flask import current_app

from studyshelf.extensions import db, atomic
from studyshelf.models.document import Document, Page, PLACEHOLDER_TITLE, PLACEHOLDER_AUTHOR
from studyshelf.services.metadata import extract_metadata
from studyshelf.services.ocr import get_ocr
from studyshelf.services.page_materializer import materialize_pages
from studyshelf.services.providers import get_gateway
from studyshelf.services.storage import get_storage


def _discard(document_id):
    """Remove a placeholder Document whose pages never materialized."""
    db.session.rollback()
    with atomic():
        stale = db.session.get(Document, document_id)
        if stale is not None:
            db.session.delete(stale)


def create_document(user, pdf_path, storage=None, ocr=None, gateway=None):
    """
    Create a Document with all of its Pages from an uploaded PDF.

    1. Commit a placeholder Document row (short transaction).
    2. Materialize pages and extract title/author, with no transaction open.
    3. Write title, author and every Page row in one transaction.

    On any failure the placeholder row is deleted, so no partial document is
    left behind. Page images already uploaded to storage are not removed.

    Returns:
        {"book": {...}, "pages": [...], "processing": {...}}
    """
    config = current_app.config
    log = current_app.logger
    storage = storage or get_storage()
    ocr = ocr or get_ocr()
    gateway = gateway or get_gateway()

    # Step 1: placeholder row
    document = Document(user_id=user.id, title=PLACEHOLDER_TITLE, author=PLACEHOLDER_AUTHOR)
    with atomic():
        db.session.add(document)
    document_id = document.id
    log.info(f"Document {document_id} created for user {user.id}, materializing pages")

    try:
        # Step 2: storage, downloads, OCR and provider calls
        materialized = materialize_pages(
            document_id,
            pdf_path,
            storage,
            config["LOCAL_BOOKS_FOLDER"],
            download_workers=config.get("DOWNLOAD_WORKERS", 8),
            timeout=config.get("DOWNLOAD_TIMEOUT", 60),
        )

        metadata = extract_metadata(
            materialized[0].image_url,
            ocr,
            gateway,
            provider=config.get("METADATA_PROVIDER"),
            fallback_provider=config.get("METADATA_FALLBACK_PROVIDER"),
        )

        # Step 3: final write
        with atomic():
            document.title = metadata.title
            document.author = metadata.author
            for mp in materialized:
                document.pages.append(Page(
                    page_number=mp.page_number,
                    image_url=mp.image_url,
                    unique_page_id=mp.unique_page_id,
                    storage_asset_id=mp.storage_asset_id,
                    local_path=mp.local_path,
                ))
    except Exception:
        log.error(f"Document {document_id} failed, removing placeholder row")
        _discard(document_id)
        raise

    log.info(
        f"Document {document_id} ready: {document.title!r} by {document.author!r}, {len(materialized)} pages"
    )
    return {
        "book": document.to_dict(),
        "pages": [p.to_dict() for p in document.pages],
        "processing": {
            "metadata": metadata.to_dict(),
            "images_generated": len(materialized),
            "local_folder": os.path.dirname(materialized[0].local_path),
        },
    }
