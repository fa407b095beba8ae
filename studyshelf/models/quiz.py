from datetime import datetime, timezone
from studyshelf.extensions import db

DIFFICULTIES = ("easy", "medium", "hard")
OPTION_KEYS = ("A", "B", "C", "D")


class Quiz(db.Model):
    __tablename__ = "quizzes"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    difficulty = db.Column(db.String(10), nullable=False, default="medium")
    pages = db.Column(db.JSON, nullable=False, default=list)  # snapshot, not a live reference
    ocr_summary = db.Column(db.JSON, nullable=True)
    score = db.Column(db.Float, default=0.0)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    questions = db.relationship(
        "Question",
        backref="quiz",
        lazy="select",
        order_by="Question.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_questions=False):
        d = {
            "id": self.id,
            "user_id": self.user_id,
            "difficulty": self.difficulty,
            "pages": self.pages or [],
            "ocr_summary": self.ocr_summary,
            "score": self.score,
            "question_count": len(self.questions),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_questions:
            d["questions"] = [q.to_dict() for q in self.questions]
        return d


class Question(db.Model):
    __tablename__ = "questions"

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    text = db.Column(db.Text, nullable=False)
    options = db.Column(db.JSON, nullable=False)  # {"A": "...", "B": "...", "C": "...", "D": "..."}
    correct_option = db.Column(db.String(1), nullable=False)
    user_option = db.Column(db.String(1), nullable=True)
    explanation_text = db.Column(db.Text, default="")

    def to_dict(self):
        return {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "question": self.text,
            "options": self.options,
            "correct_option": self.correct_option,
            "user_option": self.user_option,
            "explanation": self.explanation_text,
        }
