"""HTTP routes: conversion endpoint, GIF hosting and health check."""

import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from giftrim import ffutil
from giftrim.engine import ConversionRequest
from giftrim.errors import InvalidInput
from giftrim.models import TimeWindow

logger = logging.getLogger(__name__)

bp = Blueprint("web", __name__)


def _state() -> dict:
    return current_app.extensions["giftrim"]


def _parse_float(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError:
        return None


@bp.route("/")
def index():
    return "GIF Converter API is running!"


@bp.route("/health")
def health():
    settings = _state()["settings"]
    pipeline = _state()["pipeline"]
    return jsonify({
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "services": {
            "ffmpeg": ffutil.ffmpeg_available(),
            "speechToText": pipeline.context.transcriber is not None,
        },
    })


@bp.route("/convert", methods=["POST"])
async def convert():
    settings = _state()["settings"]
    pipeline = _state()["pipeline"]

    f = request.files.get("video")
    if f is not None and not f.filename:
        f = None
    reference = (request.form.get("videoUrl") or "").strip() or None

    if f is None and reference is None:
        return jsonify({"error": "No video file uploaded"}), 400

    start = _parse_float(request.form.get("startTime"))
    if start is None:
        start = 0.0
    end = _parse_float(request.form.get("endTime"))
    try:
        if end is None:
            raise InvalidInput("Invalid time range")
        TimeWindow.create(start, end)
    except InvalidInput:
        return jsonify({"error": "Invalid time range"}), 400

    conversion = ConversionRequest(
        start=start,
        end=end,
        data=f.read() if f is not None else None,
        filename=f.filename if f is not None else None,
        reference=reference if f is None else None,
        subtitles=request.form.get("includeSubtitles") == "true",
    )

    try:
        result = await pipeline.convert(conversion)
    except InvalidInput as e:
        return jsonify({"error": "Invalid input", "message": str(e)}), 400
    except Exception as e:
        logger.exception("Conversion error")
        message = str(e) if settings.is_development else "Internal server error"
        return jsonify({"error": "Conversion failed", "message": message}), 500

    return jsonify(result.to_dict())


@bp.route("/gifs/<path:name>")
def gif(name: str):
    settings = _state()["settings"]
    return send_from_directory(settings.outputs_dir.resolve(), name, mimetype="image/gif")
