import logging
import time
from dataclasses import dataclass
from urllib.parse import urlparse

import cloudinary
import cloudinary.uploader
import cloudinary.utils
from flask import current_app

from studyshelf.services.errors import MaterializationError

logger = logging.getLogger(__name__)


@dataclass
class RasterizedDocument:
    base_reference: str
    version: int
    page_count: int


@dataclass
class StoredAsset:
    url: str
    asset_id: str


@dataclass
class StorageConfig:
    cloudinary_url: str = ""
    folder: str = "books"

    @classmethod
    def from_mapping(cls, config):
        return cls(
            cloudinary_url=config.get("CLOUDINARY_URL", ""),
            folder=config.get("CLOUDINARY_FOLDER", "books"),
        )


class CloudinaryStorage:
    """Cloudinary rasterizes uploaded PDFs and hosts the per-page images."""

    def __init__(self, config: StorageConfig):
        self.config = config
        parsed = urlparse(config.cloudinary_url or "")
        if parsed.scheme != "cloudinary" or not parsed.hostname:
            raise MaterializationError("CLOUDINARY_URL is missing or malformed")
        cloudinary.config(
            cloud_name=parsed.hostname,
            api_key=parsed.username,
            api_secret=parsed.password,
            secure=True,
        )

    def upload_document(self, pdf_path):
        folder = f"{self.config.folder}/{int(time.time() * 1000)}"
        result = cloudinary.uploader.upload(
            pdf_path,
            resource_type="image",
            folder=folder,
            use_filename=True,
            unique_filename=True,
        )
        if not result or not result.get("public_id"):
            raise MaterializationError("Failed to upload PDF to Cloudinary")

        logger.info("Uploaded document as %s (%s pages)", result["public_id"], result.get("pages", 1))
        return RasterizedDocument(
            base_reference=result["public_id"],
            version=result.get("version"),
            page_count=result.get("pages") or 1,
        )

    def page_image_url(self, base_reference, version, page_number):
        url, _options = cloudinary.utils.cloudinary_url(
            base_reference,
            secure=True,
            resource_type="image",
            format="jpg",
            version=version,
            transformation=[{"page": page_number}],
        )
        return url

    def upload_page_image(self, local_path, unique_id):
        result = cloudinary.uploader.upload(
            local_path,
            resource_type="image",
            folder=f"{self.config.folder}/pages",
            public_id=unique_id,
            overwrite=False,
        )
        if not result or not result.get("secure_url"):
            raise MaterializationError(f"Failed to upload page image {unique_id}")
        return StoredAsset(url=result["secure_url"], asset_id=result["public_id"])


def get_storage():
    return CloudinaryStorage(StorageConfig.from_mapping(current_app.config))
