from datetime import datetime, timezone
from studyshelf.extensions import db


class Explanation(db.Model):
    __tablename__ = "explanations"

    id = db.Column(db.Integer, primary_key=True)
    page_id = db.Column(db.Integer, db.ForeignKey("pages.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    response_text = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "page_id": self.page_id,
            "page_number": self.page.page_number if self.page else None,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "response": self.response_text,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
