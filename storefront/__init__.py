import os

from flask import Flask, g
from flask_login import current_user

from constants import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_REINDEX_BATCH_SIZE,
    DEFAULT_SUGGESTION_LIMIT,
    MAX_PAGE_SIZE,
)
from database import SessionLocal, init_db
from extensions import login_manager
from models import User
from storefront.blueprints.admin import admin_bp
from storefront.blueprints.products import products_bp
from storefront.errors import register_error_handlers
from storefront.services.search_text import configure_translit_table


def _env_int(name, default):
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def create_app(config=None):
    app = Flask(__name__)
    app.secret_key = os.environ.get("STOREFRONT_SECRET_KEY", "change-me")
    app.config.update(
        SEARCH_SCORING_POLICY=os.environ.get("STOREFRONT_SEARCH_SCORING_POLICY", "native"),
        SEARCH_DEFAULT_LIMIT=_env_int("STOREFRONT_SEARCH_DEFAULT_LIMIT", DEFAULT_PAGE_SIZE),
        SEARCH_MAX_LIMIT=_env_int("STOREFRONT_SEARCH_MAX_LIMIT", MAX_PAGE_SIZE),
        SEARCH_SUGGESTION_LIMIT=_env_int(
            "STOREFRONT_SEARCH_SUGGESTION_LIMIT", DEFAULT_SUGGESTION_LIMIT
        ),
        SEARCH_REINDEX_BATCH_SIZE=_env_int(
            "STOREFRONT_SEARCH_REINDEX_BATCH_SIZE", DEFAULT_REINDEX_BATCH_SIZE
        ),
        SEARCH_TRANSLIT_TABLE=os.environ.get("STOREFRONT_SEARCH_TRANSLIT_TABLE"),
    )
    if config:
        app.config.update(config)
    app.json.ensure_ascii = False

    login_manager.init_app(app)
    register_error_handlers(app)
    app.register_blueprint(products_bp)
    app.register_blueprint(admin_bp)
    configure_translit_table(app.config.get("SEARCH_TRANSLIT_TABLE"), logger=app.logger)
    init_db()

    @app.before_request
    def bind_db_session():
        g.db = SessionLocal()

    @app.before_request
    def attach_current_user():
        g.current_user = current_user

    @app.teardown_appcontext
    def remove_db_session(exception=None):
        SessionLocal.remove()

    return app


@login_manager.user_loader
def load_user(user_id):
    try:
        return SessionLocal().get(User, int(user_id))
    except (TypeError, ValueError):
        return None
