"""HTTP surface for the canonicalizer (Flask)."""

from __future__ import annotations

import asyncio
import logging

from flask import Flask, jsonify, request

from .canon.service import CanonicalizeService
from .errors import CacheReadError

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 200 * 1024


def create_app(service: CanonicalizeService) -> Flask:
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_BODY_BYTES

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    @app.post("/api/canonicalize-items")
    def canonicalize_items():
        payload = request.get_json(silent=True)
        try:
            response, error = asyncio.run(service.handle(payload))
        except CacheReadError:
            logger.exception("canonicalize-items: cache unavailable")
            return jsonify({"error": "cache_unavailable"}), 503

        if error is not None:
            return jsonify({"error": "bad_request", "details": error.details}), 400
        return jsonify(response.to_dict())

    return app
