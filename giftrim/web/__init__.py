"""Flask application factory for the giftrim HTTP API."""

from datetime import datetime, timezone

from flask import Flask, jsonify
from flask_cors import CORS

from giftrim.engine import Pipeline, PipelineContext
from giftrim.settings import Settings

# Headroom over the upload limit for multipart framing and form fields
FORM_OVERHEAD_BYTES = 1024 * 1024


def create_app(settings: Settings | None = None, pipeline: Pipeline | None = None) -> Flask:
    settings = settings or Settings.from_env()
    settings.uploads_dir.mkdir(parents=True, exist_ok=True)
    settings.outputs_dir.mkdir(parents=True, exist_ok=True)

    if pipeline is None:
        pipeline = Pipeline(PipelineContext.from_settings(settings))

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes + FORM_OVERHEAD_BYTES
    app.extensions["giftrim"] = {"settings": settings, "pipeline": pipeline}

    CORS(
        app,
        origins=settings.frontend_url,
        methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )

    from giftrim.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": "Upload failed", "message": "File too large"}), 413

    @app.errorhandler(500)
    def internal_error(error):
        original = getattr(error, "original_exception", None) or error
        message = str(original) if settings.is_development else "Internal server error"
        return jsonify({
            "error": "Something broke!",
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }), 500

    return app
