from flask import Blueprint, request, jsonify
from flask_login import login_required
from studyshelf.extensions import db
from studyshelf.models.category import AIModel, Prompt, Category
from studyshelf.services.providers import ProviderKind

categories_bp = Blueprint("categories", __name__, url_prefix="/api")


@categories_bp.route("/models", methods=["GET"])
@login_required
def list_models():
    models = AIModel.query.order_by(AIModel.name).all()
    return jsonify({"models": [m.to_dict() for m in models]})


@categories_bp.route("/models", methods=["POST"])
@login_required
def create_model():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return jsonify({"error": "Model name is required"}), 400

    # An explicit provider wins; otherwise infer it once, here
    try:
        kind = ProviderKind.parse(data.get("provider")) or ProviderKind.guess(name)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    model = AIModel(name=name, description=data.get("description"), provider_kind=kind)
    db.session.add(model)
    db.session.commit()
    return jsonify({"model": model.to_dict()}), 201


@categories_bp.route("/prompts", methods=["GET"])
@login_required
def list_prompts():
    prompts = Prompt.query.order_by(Prompt.created_at.desc()).all()
    return jsonify({"prompts": [p.to_dict() for p in prompts]})


@categories_bp.route("/prompts", methods=["POST"])
@login_required
def create_prompt():
    data = request.get_json(silent=True) or {}
    text = (data.get("text") or "").strip()
    if not text:
        return jsonify({"error": "Prompt text is required"}), 400

    prompt = Prompt(text=text)
    db.session.add(prompt)
    db.session.commit()
    return jsonify({"prompt": prompt.to_dict()}), 201


@categories_bp.route("/categories", methods=["GET"])
@login_required
def list_categories():
    categories = Category.query.order_by(Category.name).all()
    return jsonify({"categories": [c.to_dict() for c in categories]})


@categories_bp.route("/categories", methods=["POST"])
@login_required
def create_category():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return jsonify({"error": "Category name is required"}), 400

    model_id = data.get("modelId")
    prompt_id = data.get("promptId")
    if model_id is not None and db.session.get(AIModel, model_id) is None:
        return jsonify({"error": "Model not found"}), 404
    if prompt_id is not None and db.session.get(Prompt, prompt_id) is None:
        return jsonify({"error": "Prompt not found"}), 404

    category = Category(
        name=name,
        description=data.get("description"),
        model_id=model_id,
        prompt_id=prompt_id,
    )
    db.session.add(category)
    db.session.commit()
    return jsonify({"category": category.to_dict()}), 201
