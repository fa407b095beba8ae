import os
import shutil
import time
import uuid
from dataclasses import dataclass

from flask import current_app

from studyshelf.services.errors import MaterializationError
from studyshelf.utils.image_utils import download_file
from studyshelf.utils.pool import map_in_order


@dataclass
class MaterializedPage:
    page_number: int
    image_url: str
    unique_page_id: str
    storage_asset_id: str
    local_path: str

    def to_dict(self):
        return {
            "page_number": self.page_number,
            "image_url": self.image_url,
            "unique_page_id": self.unique_page_id,
            "storage_asset_id": self.storage_asset_id,
            "local_path": self.local_path,
        }


def generate_page_id(document_id, page_number):
    """page_{documentId}_{pageNumber}_{timestampMs}_{random}"""
    return f"page_{document_id}_{page_number}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"


def materialize_pages(document_id, pdf_path, storage, local_root, download_workers=8, timeout=60):
    """
    Turn one uploaded PDF into independently addressable page images.

    1. Upload the whole PDF to storage (page count + versioned base reference).
    2. Build one image URL per page from the base reference.
    3. Download every page into a local folder, in parallel.
    4. Give each page a unique page id.
    5. Re-upload each page image under its unique id.

    Local copies are kept on success. Any failure aborts the whole document.

    Returns:
        list of MaterializedPage ordered by page number
    """
    log = current_app.logger
    local_folder = os.path.join(local_root, f"{document_id}_{int(time.time() * 1000)}")

    try:
        # Step 1: rasterize
        rasterized = storage.upload_document(pdf_path)
        if rasterized.page_count < 1:
            raise MaterializationError("Document has no pages")
        log.info(f"Document {document_id}: {rasterized.page_count} pages at {rasterized.base_reference}")

        # Step 2: per-page source URLs
        sources = [
            (number, storage.page_image_url(rasterized.base_reference, rasterized.version, number))
            for number in range(1, rasterized.page_count + 1)
        ]

        # Step 3: parallel download
        os.makedirs(local_folder, exist_ok=True)

        def _download(source):
            number, url = source
            return download_file(url, os.path.join(local_folder, f"page-{number}.jpg"), timeout=timeout)

        local_paths = map_in_order(_download, sources, workers=download_workers)
        log.info(f"Document {document_id}: downloaded {len(local_paths)} pages to {local_folder}")

        # Steps 4 + 5: unique ids and individual uploads
        pages = []
        for (number, _url), local_path in zip(sources, local_paths):
            unique_page_id = generate_page_id(document_id, number)
            asset = storage.upload_page_image(local_path, unique_page_id)
            pages.append(MaterializedPage(
                page_number=number,
                image_url=asset.url,
                unique_page_id=unique_page_id,
                storage_asset_id=asset.asset_id,
                local_path=local_path,
            ))
        log.info(f"Document {document_id}: uploaded {len(pages)} page images")
        return pages

    except Exception as e:
        shutil.rmtree(local_folder, ignore_errors=True)
        log.error(f"Page materialization failed for document {document_id}: {e}")
        if isinstance(e, MaterializationError):
            raise
        raise MaterializationError(f"Page materialization failed: {e}") from e
