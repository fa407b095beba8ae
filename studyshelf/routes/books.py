import os
from datetime import datetime, timezone
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
from studyshelf.extensions import db
from studyshelf.models.document import Document
from studyshelf.services.documents import create_document
from studyshelf.services.errors import PipelineError
from studyshelf.utils.image_utils import save_upload

books_bp = Blueprint("books", __name__, url_prefix="/api/books")

PDF_MIMETYPES = ("application/pdf", "application/x-pdf")


def _is_pdf(file_storage):
    if file_storage.mimetype in PDF_MIMETYPES:
        return True
    return (file_storage.filename or "").lower().endswith(".pdf")


@books_bp.route("", methods=["POST"])
@login_required
def upload_book():
    pdf = request.files.get("pdfFile")
    if pdf is None or not pdf.filename:
        return jsonify({"error": "No PDF file uploaded"}), 400
    if not _is_pdf(pdf):
        return jsonify({"error": "Only PDF files are allowed"}), 400

    pdf_path = save_upload(pdf, current_app.config["UPLOAD_FOLDER"])
    current_app.logger.info(f"PDF uploaded by user {current_user.id}: {pdf.filename} -> {pdf_path}")

    try:
        result = create_document(current_user, pdf_path)
    except PipelineError as e:
        current_app.logger.error(f"Book creation failed: {e}")
        return jsonify({"error": "Failed to process PDF", "details": str(e)}), e.status_code
    except Exception as e:
        current_app.logger.error(f"Unexpected error while creating book: {e}")
        return jsonify({"error": "Failed to process PDF", "details": str(e)}), 500
    finally:
        if os.path.exists(pdf_path):
            os.remove(pdf_path)
            current_app.logger.info(f"Temporary upload removed: {pdf_path}")

    return jsonify({"message": "Book created successfully", **result}), 201


@books_bp.route("/<int:book_id>", methods=["GET"])
@login_required
def get_book(book_id):
    book = Document.query.filter_by(id=book_id, user_id=current_user.id).first_or_404()
    book.last_opened_at = datetime.now(timezone.utc)
    db.session.commit()
    return jsonify({"book": book.to_dict()})


@books_bp.route("/<int:book_id>/pages", methods=["GET"])
@login_required
def get_book_pages(book_id):
    book = Document.query.filter_by(id=book_id, user_id=current_user.id).first_or_404()
    return jsonify({"book_id": book.id, "pages": [p.to_dict() for p in book.pages]})
