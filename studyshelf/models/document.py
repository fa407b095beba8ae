from datetime import datetime, timezone
from studyshelf.extensions import db

PLACEHOLDER_TITLE = "Processing..."
PLACEHOLDER_AUTHOR = "Unknown Author"


class Document(db.Model):
    __tablename__ = "documents"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False, default=PLACEHOLDER_TITLE)
    author = db.Column(db.String(255), nullable=False, default=PLACEHOLDER_AUTHOR)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    last_opened_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    pages = db.relationship(
        "Page",
        backref="document",
        lazy="select",
        order_by="Page.page_number",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_pages=False):
        d = {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_opened_at": self.last_opened_at.isoformat() if self.last_opened_at else None,
            "total_pages": len(self.pages),
        }
        if include_pages:
            d["pages"] = [p.to_dict() for p in self.pages]
        return d


class Page(db.Model):
    __tablename__ = "pages"
    __table_args__ = (
        db.UniqueConstraint("document_id", "page_number", name="uq_page_document_number"),
    )

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(
        db.Integer, db.ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    page_number = db.Column(db.Integer, nullable=False)
    image_url = db.Column(db.String(500), nullable=True)
    unique_page_id = db.Column(db.String(255), unique=True, nullable=False, index=True)
    storage_asset_id = db.Column(db.String(255), nullable=True)
    local_path = db.Column(db.String(500), nullable=True)  # retained local copy

    explanations = db.relationship("Explanation", backref="page", lazy="dynamic", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "document_id": self.document_id,
            "page_number": self.page_number,
            "image_url": self.image_url,
            "unique_page_id": self.unique_page_id,
            "storage_asset_id": self.storage_asset_id,
            "local_path": self.local_path,
        }
