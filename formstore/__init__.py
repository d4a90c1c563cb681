"""Flask application factory."""

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .config import Settings, get_settings
from .dispatcher import RequestDispatcher
from .entities import get_schema
from .extensions import db
from .rendering import TemplateRenderer
from .store import EntityStore

logger = logging.getLogger(__name__)


def _resolve_database_uri(settings: Settings, instance_path: str) -> str:
    """Return the store URL, defaulting to ``app.db`` in the instance folder."""

    database_uri = settings.database_url
    if not database_uri:
        default_sqlite_path = Path(instance_path) / "app.db"
        default_sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{default_sqlite_path}"

    if database_uri.startswith("sqlite:///"):
        sqlite_path = database_uri.replace("sqlite:///", "", 1)
        if sqlite_path and sqlite_path != ":memory:":
            Path(sqlite_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
    return database_uri


def create_app(settings: Optional[Settings] = None) -> Flask:
    """Configure and return the Flask application.

    One :class:`EntityStore` and one :class:`RequestDispatcher` are built per
    application and attached to it; nothing is shared through module globals
    except the Flask-SQLAlchemy handle.
    """

    load_dotenv()
    settings = settings or get_settings()

    app = Flask(__name__)
    app.settings = settings

    database_uri = _resolve_database_uri(settings, app.instance_path)
    app.config.update(
        SQLALCHEMY_DATABASE_URI=database_uri,
        SQLALCHEMY_ENGINE_OPTIONS={"pool_pre_ping": True},
        FORMSTORE_ENTITY=settings.entity,
        FORMSTORE_CHUNK_SIZE=settings.chunk_size,
        FORMSTORE_MAX_FORM_FIELDS=settings.max_form_fields,
    )
    app.config.setdefault("SQLALCHEMY_TRACK_MODIFICATIONS", False)

    db.init_app(app)

    schema = get_schema(settings.entity)
    with app.app_context():
        store = EntityStore(db.engine, schema, metadata=db.metadata)

    # A store that cannot create its table still serves requests; every
    # operation then fails and is reported per request.
    app.table_ready = store.create_table()
    if not app.table_ready:
        logger.warning("Serving %s without a verified table at %s", schema.kind, database_uri)

    dispatcher = RequestDispatcher(
        store,
        TemplateRenderer(),
        max_form_fields=settings.max_form_fields,
        redirect_outcome=settings.redirect_outcome,
    )

    app.entity_store = store
    app.dispatcher = dispatcher

    from .routes import main_bp

    app.register_blueprint(main_bp)

    return app
