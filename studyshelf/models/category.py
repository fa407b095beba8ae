from datetime import datetime, timezone
from studyshelf.extensions import db
from studyshelf.services.providers import ProviderKind


class AIModel(db.Model):
    __tablename__ = "ai_models"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    provider_kind = db.Column(db.Enum(ProviderKind, native_enum=False, length=20), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "provider_kind": self.provider_kind.value if self.provider_kind else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Prompt(db.Model):
    __tablename__ = "prompts"

    id = db.Column(db.Integer, primary_key=True)
    text = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "text": self.text,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.String(500), nullable=True)
    model_id = db.Column(db.Integer, db.ForeignKey("ai_models.id", ondelete="SET NULL"), nullable=True)
    prompt_id = db.Column(db.Integer, db.ForeignKey("prompts.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    model = db.relationship("AIModel", backref=db.backref("categories", lazy="dynamic"))
    prompt = db.relationship("Prompt", backref=db.backref("categories", lazy="dynamic"))
    explanations = db.relationship("Explanation", backref="category", lazy="dynamic", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "model_id": self.model_id,
            "model_name": self.model.name if self.model else None,
            "provider_kind": self.model.provider_kind.value if self.model and self.model.provider_kind else None,
            "prompt_id": self.prompt_id,
            "prompt": self.prompt.text if self.prompt else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
