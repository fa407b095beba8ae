import os
from flask import Flask, jsonify
from config import Config
from studyshelf.extensions import db, migrate, login_manager


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Ensure directories exist
    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)
    os.makedirs(app.config["LOCAL_BOOKS_FOLDER"], exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # Register blueprints
    from studyshelf.routes.auth import auth_bp
    from studyshelf.routes.books import books_bp
    from studyshelf.routes.quiz import quiz_bp
    from studyshelf.routes.explanations import explanations_bp
    from studyshelf.routes.categories import categories_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(books_bp)
    app.register_blueprint(quiz_bp)
    app.register_blueprint(explanations_bp)
    app.register_blueprint(categories_bp)

    from studyshelf.cli import backfill_provider_kinds_command
    app.cli.add_command(backfill_provider_kinds_command)

    # User loader
    from studyshelf.models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Login required"}), 401

    @app.errorhandler(413)
    def too_large(_error):
        return jsonify({"error": "File exceeds the 50 MB upload limit"}), 413

    # Create tables on first run
    with app.app_context():
        from studyshelf.models import user, document, category, quiz, explanation  # noqa
        db.create_all()

    return app
