import os

from formstore import create_app
from formstore.utils.logging_setup import setup_logging


app = create_app()


if __name__ == "__main__":
    setup_logging(app.settings.log_level)
    debug = os.environ.get("FLASK_DEBUG", "0") in {"1", "true", "True"}
    app.run(port=int(os.environ.get("PORT", "8080")), debug=debug)
