"""Flask application factory for the SVG Frames web UI."""

import logging
import tempfile
from pathlib import Path

from flask import Flask, jsonify

from svgframes.svgdoc import InvalidSvgError

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 50 * 1024 * 1024


def create_app(work_dir: Path | None = None) -> Flask:
    """Build the app.

    ``SVGFRAMES_*`` environment variables override the defaults, e.g.
    ``SVGFRAMES_WORK_DIR`` or ``SVGFRAMES_MAX_CONTENT_LENGTH``. An explicit
    ``work_dir`` wins over both.
    """
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_BYTES
    app.config.from_prefixed_env("SVGFRAMES")
    if work_dir is not None:
        app.config["WORK_DIR"] = work_dir
    elif "WORK_DIR" not in app.config:
        app.config["WORK_DIR"] = tempfile.mkdtemp(prefix="svgframes_")
    app.config["WORK_DIR"] = Path(app.config["WORK_DIR"])
    logger.debug("Storing uploads under %s", app.config["WORK_DIR"])

    from svgframes.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(InvalidSvgError)
    def invalid_svg(error):
        return jsonify({"error": str(error)}), 400

    @app.errorhandler(413)
    def request_entity_too_large(error):
        limit_mb = app.config["MAX_CONTENT_LENGTH"] / (1024 * 1024)
        return jsonify({"error": f"File too large (limit {limit_mb:g} MB)"}), 413

    return app
