from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
from studyshelf.services.errors import PipelineError
from studyshelf.services.explanations import generate_explanations, list_explanations

explanations_bp = Blueprint("explanations", __name__, url_prefix="/api/explanations")


@explanations_bp.route("/generate", methods=["POST"])
@login_required
def generate():
    data = request.get_json(silent=True) or {}
    page_ids = data.get("pageIds")
    page_numbers = data.get("pageNumbers")

    if page_ids is not None and not isinstance(page_ids, list):
        return jsonify({"error": "pageIds must be an array"}), 400
    if page_numbers is not None and not isinstance(page_numbers, list):
        return jsonify({"error": "pageNumbers must be an array"}), 400

    try:
        result = generate_explanations(
            current_user,
            data.get("categoryId"),
            page_ids=page_ids,
            book_id=data.get("bookId"),
            page_numbers=page_numbers,
        )
    except PipelineError as e:
        current_app.logger.error(f"Explanation generation failed: {e}")
        return jsonify({"error": "Failed to generate explanations", "details": str(e)}), e.status_code
    except Exception as e:
        current_app.logger.error(f"Unexpected error during explanation generation: {e}")
        return jsonify({"error": "Failed to generate explanations", "details": str(e)}), 500

    return jsonify({
        "message": f"Generated {len(result['explanations'])} explanations",
        **result,
    }), 201


@explanations_bp.route("", methods=["GET"])
@login_required
def list_all():
    page_id = request.args.get("page_id", type=int)
    category_id = request.args.get("category_id", type=int)
    explanations = list_explanations(current_user, page_id=page_id, category_id=category_id)
    return jsonify({"explanations": [e.to_dict() for e in explanations]})
