"""Application-wide Flask extensions."""

from flask_sqlalchemy import SQLAlchemy


# A single SQLAlchemy handle shared across the application. The engine is
# configured in :func:`formstore.create_app` and handed to the entity store,
# which declares its table on this handle's metadata.
db = SQLAlchemy()
