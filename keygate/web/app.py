"""
KeyGate Web API
===============
Flask application exposing the authentication core over HTTP.

Run with:
    flask --app keygate.web.app run
    gunicorn keygate.web.wsgi:application

Operator commands:
    flask --app keygate.web.app purge-sessions
    flask --app keygate.web.app unlock-user <username>
    flask --app keygate.web.app clear-lockouts
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Iterable, Optional

import click
from flask import Blueprint, Flask, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from keygate.core.auth.credentials import SeedUser
from keygate.core.auth.service import AuthService
from keygate.core.config import KeyGateConfig
from keygate.core.errors import (
    ConfigurationError,
    ForbiddenError,
    HasherUnavailableError,
    InvalidCredentialsError,
    KeyGateError,
    LastAdminError,
    StorageUnavailableError,
    TooManyAttemptsError,
    UnauthorizedError,
    UserExistsError,
    UserNotFoundError,
    ValidationError,
)
from keygate.core.logging import configure_root_logger
from keygate.core.profile import ProfileService
from keygate.db.kv_store import KeyValueStore, create_store


log = logging.getLogger("keygate.web")

MAX_REQUEST_BYTES = 1024 * 1024

_ERROR_STATUS: dict[type[KeyGateError], int] = {
    ValidationError: 400,
    InvalidCredentialsError: 401,
    UnauthorizedError: 401,
    ForbiddenError: 403,
    UserNotFoundError: 404,
    UserExistsError: 409,
    LastAdminError: 409,
    TooManyAttemptsError: 429,
    StorageUnavailableError: 500,
    HasherUnavailableError: 500,
    ConfigurationError: 500,
}


@dataclass(frozen=True)
class KeyGateState:
    """Per-application services, stored in app.extensions."""
    auth: AuthService
    profile: ProfileService
    config: KeyGateConfig


api = Blueprint("api", __name__, url_prefix="/api")


# ============================================================
# HELPERS
# ============================================================

def _state() -> KeyGateState:
    return current_app.extensions["keygate"]


def _bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[7:].strip()
    return ""


def _json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _error_response(code: str, message: str, status: int):
    return jsonify({"error": {"code": code, "message": message}}), status


def _status_for(error: KeyGateError) -> int:
    for cls in type(error).__mro__:
        if cls in _ERROR_STATUS:
            return _ERROR_STATUS[cls]
    return 500


def require_admin(f: Callable) -> Callable:
    """Require a bearer token for a live admin session; sets g.username."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        check = _state().auth.require_admin(_bearer_token())
        g.username = check.raise_for_denial()
        return f(*args, **kwargs)
    return wrapper


# ============================================================
# HEALTH CHECK
# ============================================================

@api.route("/health")
def health():
    return jsonify({
        "status": "healthy",
        "storage": _state().config.storage.backend,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


# ============================================================
# AUTHENTICATION ROUTES
# ============================================================

@api.route("/auth/login", methods=["POST"])
def login():
    data = _json_body()
    username = data.get("username")
    password = data.get("password")

    if not username or not password:
        raise ValidationError("Username and password are required")

    result = _state().auth.login(username, password)

    response = jsonify({"success": True, **result.to_dict()})
    response.headers["Cache-Control"] = "no-store"
    return response


@api.route("/auth/logout", methods=["POST"])
def logout():
    token = _bearer_token()
    if not token:
        raise UnauthorizedError("No authorization token provided")
    _state().auth.logout(token)
    return jsonify({"success": True, "message": "Logged out successfully"})


@api.route("/auth/validate", methods=["GET"])
def validate_token_route():
    session = _state().auth.validate_session(_bearer_token())
    if not session.valid:
        return jsonify(session.to_dict()), 401
    return jsonify(session.to_dict())


# ============================================================
# USER MANAGEMENT (admin only)
# ============================================================

@api.route("/users", methods=["GET"])
@require_admin
def list_users():
    users = _state().auth.list_users()
    return jsonify({"users": [user.to_dict() for user in users]})


@api.route("/users", methods=["POST"])
@require_admin
def create_user():
    data = _json_body()
    username = data.get("username")
    password = data.get("password")

    if not username or not password:
        raise ValidationError("Username and password are required")

    user = _state().auth.create_user(username, password, data.get("role") or "user")
    log.info("Admin %s created user %s", g.username, user.username)
    return jsonify({
        "success": True,
        "message": "User created successfully",
        "user": user.summary().to_dict(),
    }), 201


@api.route("/users/<username>/password", methods=["PUT"])
@require_admin
def update_user_password(username: str):
    data = _json_body()
    new_password = data.get("new_password", data.get("newPassword"))

    if not new_password:
        raise ValidationError("New password is required")

    _state().auth.update_user_password(username, new_password)
    log.info("Admin %s changed the password of %s", g.username, username)
    return jsonify({"success": True, "message": "Password updated successfully"})


@api.route("/users/<username>", methods=["DELETE"])
@require_admin
def delete_user(username: str):
    _state().auth.delete_user(username)
    log.info("Admin %s deleted user %s", g.username, username)
    return jsonify({"success": True, "message": "User deleted successfully"})


# ============================================================
# PROFILE & STATISTICS
# ============================================================

@api.route("/profile", methods=["GET"])
def get_profile():
    state = _state()
    profile = state.profile.get_profile()

    try:
        state.auth.stats.record_profile_view()
    except KeyGateError:
        log.warning("Could not record profile view", exc_info=True)

    return jsonify(profile)


@api.route("/profile", methods=["PUT"])
@require_admin
def update_profile():
    profile = _state().profile.update_profile(_json_body())
    log.info("Admin %s updated the profile", g.username)
    return jsonify({"success": True, "profile": profile})


@api.route("/statistics", methods=["GET"])
@require_admin
def get_statistics():
    auth = _state().auth
    stats = auth.stats.get_statistics()
    return jsonify({**stats, "total_users": len(auth.list_users())})


@api.route("/<path:path>", methods=["OPTIONS"])
def handle_options(path: str):
    return "", 204


# ============================================================
# ERROR HANDLERS
# ============================================================

def _handle_keygate_error(error: KeyGateError):
    status = _status_for(error)
    if status >= 500:
        log.error("%s: %s", type(error).__name__, error, exc_info=error)
    return _error_response(error.code, error.public_message, status)


def _handle_http_error(error: HTTPException):
    return _error_response(
        (error.name or "error").lower().replace(" ", "_"),
        error.description or "Request failed",
        error.code or 500,
    )


def _handle_unexpected_error(error: Exception):
    log.exception("Unhandled error: %s", error)
    return _error_response("server_error", "Internal server error", 500)


# ============================================================
# CLI
# ============================================================

def _register_cli(app: Flask) -> None:
    @app.cli.command("purge-sessions")
    def purge_sessions_command():
        """Delete every expired session."""
        removed = app.extensions["keygate"].auth.purge_expired_sessions()
        click.echo(f"Purged {removed} expired sessions")

    @app.cli.command("unlock-user")
    @click.argument("username")
    def unlock_user_command(username: str):
        """Clear the failed-login counter of USERNAME."""
        app.extensions["keygate"].auth.unlock_user(username)
        click.echo(f"Unlocked {username}")

    @app.cli.command("clear-lockouts")
    def clear_lockouts_command():
        """Clear every failed-login counter."""
        cleared = app.extensions["keygate"].auth.clear_lockouts()
        click.echo(f"Cleared {cleared} lockout counters")


# ============================================================
# APP FACTORY
# ============================================================

def create_app(
    config: Optional[KeyGateConfig] = None,
    store: Optional[KeyValueStore] = None,
    seed_users: Optional[Iterable[SeedUser]] = None,
    configure_logging: bool = True,
) -> Flask:
    """
    Build the Flask application and seed the user store.

    Args:
        config: Configuration (KeyGateConfig.load() if omitted)
        store: Key-value store (built from config if omitted)
        seed_users: First-boot accounts (ADMIN_CREDENTIALS if omitted)
        configure_logging: Install the redacting root log handlers

    Raises:
        ConfigurationError: If seed credentials contain no valid admin
        StorageUnavailableError: If the store cannot be reached at startup
    """
    config = config or KeyGateConfig.load()

    if configure_logging:
        if config.logging.enable_file:
            config.ensure_directories()
        configure_root_logger(config.logging, config.paths.log_dir)

    if store is None:
        store = create_store(config)

    auth = AuthService(store, config.security)
    try:
        if auth.bootstrap(seed_users):
            log.info("Seeded initial user accounts")
    except KeyGateError:
        log.critical("Startup bootstrap failed", exc_info=True)
        raise

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_REQUEST_BYTES
    app.config["DEBUG"] = config.app.debug_mode
    app.extensions["keygate"] = KeyGateState(
        auth=auth,
        profile=ProfileService(store),
        config=config,
    )
    app.register_blueprint(api)

    app.register_error_handler(KeyGateError, _handle_keygate_error)
    app.register_error_handler(HTTPException, _handle_http_error)
    app.register_error_handler(Exception, _handle_unexpected_error)

    cors_origin = config.app.cors_origin

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = cors_origin
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        response.headers["Access-Control-Max-Age"] = "600"
        return response

    _register_cli(app)
    log.info("%s started with %s storage", config.app.app_name, config.storage.backend)
    return app
