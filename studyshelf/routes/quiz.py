from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
from studyshelf.models.quiz import Quiz
from studyshelf.services.errors import PipelineError
from studyshelf.services.quiz_generator import generate_quiz, submit_quiz

quiz_bp = Blueprint("quiz", __name__, url_prefix="/api/quizzes")


@quiz_bp.route("/generate", methods=["POST"])
@login_required
def generate():
    data = request.get_json(silent=True) or {}
    page_ids = data.get("pageIds") or []
    difficulty = data.get("difficulty", "medium")
    question_count = data.get("questionCount", 10)

    if not isinstance(page_ids, list):
        return jsonify({"error": "pageIds must be an array"}), 400

    try:
        result = generate_quiz(
            current_user,
            page_ids=page_ids,
            difficulty=difficulty,
            question_count=question_count,
        )
    except PipelineError as e:
        current_app.logger.error(f"Quiz generation failed: {e}")
        return jsonify({"error": "Failed to generate quiz", "details": str(e)}), e.status_code
    except Exception as e:
        current_app.logger.error(f"Unexpected error during quiz generation: {e}")
        return jsonify({"error": "Failed to generate quiz", "details": str(e)}), 500

    return jsonify({"message": "Quiz generated successfully", **result}), 201


@quiz_bp.route("", methods=["GET"])
@login_required
def list_quizzes():
    quizzes = Quiz.query.filter_by(user_id=current_user.id).order_by(
        Quiz.created_at.desc(), Quiz.id.desc()
    ).all()
    return jsonify({"quizzes": [q.to_dict() for q in quizzes]})


@quiz_bp.route("/<int:quiz_id>", methods=["GET"])
@login_required
def get_quiz(quiz_id):
    quiz = Quiz.query.filter_by(id=quiz_id, user_id=current_user.id).first_or_404()
    return jsonify({"quiz": quiz.to_dict(include_questions=True)})


@quiz_bp.route("/<int:quiz_id>/submit", methods=["POST"])
@login_required
def submit(quiz_id):
    quiz = Quiz.query.filter_by(id=quiz_id, user_id=current_user.id).first_or_404()
    data = request.get_json(silent=True) or {}

    try:
        result = submit_quiz(quiz, data.get("answers"))
    except PipelineError as e:
        return jsonify({"error": str(e)}), e.status_code

    return jsonify({"message": "Quiz submitted successfully", **result})
