import os
import sqlite3

import pytest

from conftest import FakeGateway, FakeStorage, build_config
from studyshelf import create_app
from studyshelf.extensions import db
from studyshelf.models.category import Prompt
from studyshelf.models.document import Document, Page, PLACEHOLDER_TITLE
from studyshelf.models.user import User
from studyshelf.services.documents import create_document
from studyshelf.services.errors import MaterializationError, ProviderError


def test_creates_document_with_all_pages(make_document):
    result = make_document(page_count=3)

    assert result["book"]["title"] == "Introduction to Biology"
    assert result["book"]["author"] == "Jane Doe"
    assert result["book"]["total_pages"] == 3
    assert [p["page_number"] for p in result["pages"]] == [1, 2, 3]
    assert len({p["unique_page_id"] for p in result["pages"]}) == 3
    assert result["processing"]["images_generated"] == 3
    assert os.path.isdir(result["processing"]["local_folder"])
    assert Page.query.count() == 3


def test_metadata_is_read_from_first_page(make_document, fake_ocr):
    result = make_document(page_count=2)
    first_url = result["pages"][0]["image_url"]
    assert fake_ocr.calls == [(first_url, 1)]


def test_failed_materialization_leaves_no_rows(app, user, fake_ocr, fake_download):
    with pytest.raises(MaterializationError):
        create_document(
            user, "/tmp/upload.pdf",
            storage=FakeStorage(page_count=3, fail_upload_at=3),
            ocr=fake_ocr,
            gateway=FakeGateway("{}"),
        )
    assert Document.query.count() == 0
    assert Page.query.count() == 0


def test_metadata_never_blocks_creation(app, user, fake_storage, fake_ocr, fake_download):
    gateway = FakeGateway(ProviderError("gateway", "No API keys available for AI processing"))
    result = create_document(user, "/tmp/upload.pdf", storage=fake_storage, ocr=fake_ocr, gateway=gateway)

    assert result["book"]["title"] == "Introduction to Biology"
    assert result["book"]["author"] == "Anonymous"


class SideWriterStorage(FakeStorage):
    """While each page image uploads, another connection reads and writes the same database."""

    def __init__(self, db_path, **kwargs):
        super().__init__(**kwargs)
        self.db_path = db_path
        self.seen_titles = []

    def upload_page_image(self, local_path, unique_id):
        conn = sqlite3.connect(self.db_path, timeout=0.5)
        try:
            self.seen_titles.append(conn.execute("SELECT title FROM documents").fetchone()[0])
            conn.execute("INSERT INTO prompts (text) VALUES (?)", (f"written during {unique_id}",))
            conn.commit()
        finally:
            conn.close()
        return super().upload_page_image(local_path, unique_id)


@pytest.fixture
def file_app(tmp_path):
    db_path = tmp_path / "shelf.db"
    app = create_app(build_config(tmp_path, SQLALCHEMY_DATABASE_URI=f"sqlite:///{db_path}"))
    with app.app_context():
        yield app, str(db_path)
        db.session.remove()
        db.drop_all()


def test_database_stays_writable_during_upload(file_app, fake_ocr, fake_download, metadata_reply):
    app, db_path = file_app
    owner = User(username="reader", email="reader@example.com")
    owner.set_password("secret123")
    db.session.add(owner)
    db.session.commit()

    storage = SideWriterStorage(db_path, page_count=3)
    result = create_document(owner, "/tmp/upload.pdf", storage=storage, ocr=fake_ocr, gateway=FakeGateway(metadata_reply))

    assert result["book"]["title"] == "Introduction to Biology"
    assert storage.seen_titles == [PLACEHOLDER_TITLE] * 3
    assert Prompt.query.count() == 3
    assert Page.query.count() == 3


def test_failed_metadata_write_removes_placeholder(app, user, fake_storage, fake_ocr, fake_download, monkeypatch):
    from studyshelf.services import documents

    def broken(*args, **kwargs):
        raise RuntimeError("metadata exploded")

    monkeypatch.setattr(documents, "extract_metadata", broken)

    with pytest.raises(RuntimeError, match="metadata exploded"):
        create_document(user, "/tmp/upload.pdf", storage=fake_storage, ocr=fake_ocr, gateway=FakeGateway("{}"))
    assert Document.query.count() == 0
    assert Page.query.count() == 0
