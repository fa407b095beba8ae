import os

import pytest

from conftest import FakeStorage
from studyshelf.services.errors import MaterializationError
from studyshelf.services.page_materializer import generate_page_id, materialize_pages


def test_pages_are_numbered_and_uniquely_identified(app, tmp_path, fake_download):
    storage = FakeStorage(page_count=5)
    pages = materialize_pages(42, "/tmp/book.pdf", storage, str(tmp_path))

    assert [p.page_number for p in pages] == [1, 2, 3, 4, 5]
    assert len({p.unique_page_id for p in pages}) == 5
    assert all(p.unique_page_id.startswith(f"page_42_{p.page_number}_") for p in pages)
    assert all(os.path.exists(p.local_path) for p in pages)
    assert pages[0].image_url == f"https://cdn.test/pages/{pages[0].unique_page_id}.jpg"
    assert len(fake_download) == 5
    assert sorted(int(url.rsplit("=", 1)[1]) for url in fake_download) == [1, 2, 3, 4, 5]


def test_parallel_downloads_keep_page_order(app, tmp_path, fake_download):
    pages = materialize_pages(7, "/tmp/book.pdf", FakeStorage(page_count=12), str(tmp_path), download_workers=4)
    assert [os.path.basename(p.local_path) for p in pages] == [f"page-{n}.jpg" for n in range(1, 13)]


def test_page_ids_differ_for_same_page():
    assert generate_page_id(1, 1) != generate_page_id(1, 1)


def test_failure_aborts_and_removes_local_folder(app, tmp_path, fake_download):
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    storage = FakeStorage(page_count=3, fail_upload_at=2)

    with pytest.raises(MaterializationError, match="storage unavailable"):
        materialize_pages(9, "/tmp/book.pdf", storage, str(scratch))

    assert os.listdir(scratch) == []


def test_download_failure_aborts(app, tmp_path, monkeypatch):
    from studyshelf.services import page_materializer

    def broken(url, dest_path, timeout=60):
        raise OSError("connection reset")

    monkeypatch.setattr(page_materializer, "download_file", broken)

    with pytest.raises(MaterializationError):
        materialize_pages(3, "/tmp/book.pdf", FakeStorage(page_count=2), str(tmp_path))
