# backend/shelfkeep/__init__.py
from __future__ import annotations

import logging

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None, *, redis_client=None, identity_resolver=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    proxy_hops = int(app.config.get("PROXY_FIX_X_FOR") or 0)
    if proxy_hops > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxy_hops)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Process-scoped collaborators, injected rather than module globals
    from .services.identity_service import IdentityResolver
    from .services.rate_limit_service import RateLimiter

    resolver = identity_resolver or IdentityResolver.from_config(app.config)
    limiter = RateLimiter.from_config(app.config, client=redis_client)
    if limiter is None:
        app.logger.warning("Rate limiting is disabled (RATE_LIMIT_ENABLED off or REDIS_URL not set)")

    from .request_context import install_request_hooks
    from .errors import register_error_handlers

    install_request_hooks(app, resolver, limiter)
    register_error_handlers(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.categories import categories_bp
    from .routes.products import products_bp
    from .routes.inventory import inventory_bp
    from .routes.sales import sales_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(sales_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
