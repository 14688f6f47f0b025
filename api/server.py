"""
Snappass HTTP API Server

Flask REST API for:
- Sharing a secret (returns a one-time token and link)
- Previewing whether a token still points at a secret
- Revealing a secret (consumes it)
- Generating a random password

Run:
    flask --app api.server run --port 8080

Or with gunicorn (production, durable store only - workers do not share memory):
    SNAPPASS_STORE=sqlite gunicorn -w 4 -b 0.0.0.0:8080 "api.server:create_app()"
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from snappass import __version__
from snappass.errors import AuthenticationError, DuplicateHandleError, MalformedInputError
from snappass.models import TimeToLive
from snappass.settings import Settings
from vault.service import SecretService, build_store, generate_password

logger = logging.getLogger(__name__)

# One answer for unknown, consumed, expired, malformed and tampered tokens,
# so callers cannot probe which one applied.
NOT_FOUND = {"error": "Secret not found or expired"}


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[SecretService] = None,
) -> Flask:
    settings = settings or Settings.load()
    service = service or SecretService(build_store(settings))

    app = Flask(__name__)
    CORS(app)
    app.config["SNAPPASS_SETTINGS"] = settings
    app.extensions["snappass"] = service

    @app.route("/api/health")
    def health_check():
        """Health check endpoint."""
        return jsonify({
            "status": "healthy",
            "version": __version__,
            "store": settings.STORE,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    @app.route("/api/secrets", methods=["POST"])
    def share_secret():
        """
        Store a secret.

        Body:
            {"password": "...", "ttl": "hour|day|week|month"}
        """
        data = request.get_json(silent=True)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400
        password = data.get("password")
        if not isinstance(password, str) or not password:
            return jsonify({"error": "Missing required field: password"}), 400

        try:
            ttl = TimeToLive.parse(data.get("ttl", settings.DEFAULT_TTL))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        try:
            token = service.set_secret(password, ttl)
        except DuplicateHandleError as e:
            logger.error(f"Failed to store secret: {e}")
            return jsonify({"error": "Internal error"}), 500

        return jsonify({
            "token": token,
            "link": f"{settings.BASE_URL}/{token}",
            "ttl": ttl.value,
            "expires_in_hours": ttl.hours,
        }), 201

    @app.route("/api/secrets/<path:token>")
    def preview_secret(token: str):
        """Report whether a secret is still waiting. Does not consume it."""
        return jsonify({"exists": service.has_secret(token)})

    @app.route("/api/secrets/reveal", methods=["POST"])
    def reveal_secret():
        """
        Reveal a secret. Succeeds once per token.

        Body:
            {"token": "..."}
        """
        data = request.get_json(silent=True)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400
        token = data.get("token")
        if not isinstance(token, str) or not token:
            return jsonify({"error": "Missing required field: token"}), 400

        try:
            password = service.get_secret(token)
        except (MalformedInputError, AuthenticationError):
            return jsonify(NOT_FOUND), 404

        if password is None:
            return jsonify(NOT_FOUND), 404
        return jsonify({"password": password})

    @app.route("/api/password/generate")
    def new_password():
        """Generate a random password to share."""
        try:
            length = int(request.args.get("length", 24))
            password = generate_password(length)
        except ValueError:
            return jsonify({"error": "length must be a positive integer"}), 400
        return jsonify({"password": password})

    return app
