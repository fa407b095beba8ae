import json
import threading

import pytest

from config import Config
from studyshelf import create_app
from studyshelf.extensions import db
from studyshelf.models.user import User
from studyshelf.services.errors import OcrError, ProviderError
from studyshelf.services.storage import RasterizedDocument, StoredAsset


class FakeStorage:
    """Stands in for Cloudinary: rasterizes to `page_count` pages."""

    def __init__(self, page_count=3, fail_upload_at=None):
        self.page_count = page_count
        self.fail_upload_at = fail_upload_at
        self.uploaded_pages = []

    def upload_document(self, pdf_path):
        return RasterizedDocument(base_reference="books/1700000000000/doc", version=1, page_count=self.page_count)

    def page_image_url(self, base_reference, version, page_number):
        return f"https://img.test/v{version}/{base_reference}.jpg?page={page_number}"

    def upload_page_image(self, local_path, unique_id):
        if self.fail_upload_at is not None and len(self.uploaded_pages) + 1 == self.fail_upload_at:
            raise RuntimeError("storage unavailable")
        self.uploaded_pages.append((local_path, unique_id))
        return StoredAsset(url=f"https://cdn.test/pages/{unique_id}.jpg", asset_id=f"books/pages/{unique_id}")


class FakeOcr:
    """Returns canned text per page number; pages in `failing` raise OcrError."""

    def __init__(self, text="Introduction to Biology\nby Jane Doe\nCells are the unit of life.", failing=()):
        self.text = text
        self.failing = set(failing)
        self.calls = []

    def extract(self, image_source, page_number):
        self.calls.append((image_source, page_number))
        if page_number in self.failing:
            raise OcrError(page_number, "image could not be read")
        return f"{self.text} (page {page_number})"


class ConcurrentOcr(FakeOcr):
    """FakeOcr that only returns once `parties` pages are being read at the same time."""

    def __init__(self, parties, **kwargs):
        super().__init__(**kwargs)
        self.barrier = threading.Barrier(parties, timeout=5)

    def extract(self, image_source, page_number):
        self.barrier.wait()
        return super().extract(image_source, page_number)


class FakeGateway:
    """Answers every completion from `reply` (a string, or a callable of the call)."""

    def __init__(self, reply=""):
        self.reply = reply
        self.calls = []

    def complete(self, context, instruction, kind=None, model=None):
        call = {"context": context, "instruction": instruction, "kind": kind, "model": model}
        self.calls.append(call)
        reply = self.reply(call) if callable(self.reply) else self.reply
        if isinstance(reply, Exception):
            raise reply
        return reply


def quiz_json(count, correct="A"):
    return json.dumps([
        {
            "question": f"Question {i}?",
            "options": {"A": f"a{i}", "B": f"b{i}", "C": f"c{i}", "D": f"d{i}"},
            "correctAnswer": correct,
            "explanation": f"Because {i}",
        }
        for i in range(1, count + 1)
    ])


def build_config(tmp_path, **overrides):
    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = "test"
        SQLALCHEMY_DATABASE_URI = "sqlite://"
        UPLOAD_FOLDER = str(tmp_path / "uploads")
        LOCAL_BOOKS_FOLDER = str(tmp_path / "local_books")
        CLOUDINARY_URL = ""
        OPENAI_API_KEY = ""
        GEMINI_API_KEY = ""
        DEEPSEEK_API_KEY = ""
        METADATA_PROVIDER = "gemini"
        METADATA_FALLBACK_PROVIDER = None
        QUIZ_PROVIDER = None
        PAGE_WORKERS = 1

    for key, value in overrides.items():
        setattr(TestConfig, key, value)
    return TestConfig


@pytest.fixture
def app(tmp_path):
    app = create_app(build_config(tmp_path))
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user(app):
    u = User(username="reader", email="reader@example.com")
    u.set_password("secret123")
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def fake_ocr():
    return FakeOcr()


@pytest.fixture
def fake_download(monkeypatch):
    """Replace page downloads with local writes."""
    from studyshelf.services import page_materializer

    downloaded = []

    def _download(url, dest_path, timeout=60):
        with open(dest_path, "wb") as f:
            f.write(b"\xff\xd8fake-jpeg")
        downloaded.append(url)
        return dest_path

    monkeypatch.setattr(page_materializer, "download_file", _download)
    return downloaded


@pytest.fixture
def metadata_reply():
    def _reply(call):
        if "cover page" in call["instruction"]:
            return '{"title": "Introduction to Biology", "author": "Jane Doe"}'
        return ProviderError("gemini", "unexpected call")
    return _reply


@pytest.fixture
def make_document(app, user, fake_storage, fake_ocr, fake_download, metadata_reply):
    """Create a document for `user` through the real pipeline with fakes underneath."""
    from studyshelf.services.documents import create_document

    def _make(page_count=3, owner=None):
        fake_storage.page_count = page_count
        return create_document(
            owner or user,
            "/tmp/upload.pdf",
            storage=fake_storage,
            ocr=fake_ocr,
            gateway=FakeGateway(metadata_reply),
        )
    return _make
