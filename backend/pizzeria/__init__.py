from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///pizzeria.db')
    app.config['SUPPORT_PHONE'] = os.getenv('SUPPORT_PHONE', '(21) 97540-6476')
    app.config['PREPARATION_MINUTES'] = int(os.getenv('PREPARATION_MINUTES', '45'))
    app.config['DELIVERY_FEE_CENTS'] = int(os.getenv('DELIVERY_FEE_CENTS', '500'))
    app.config['RECONCILE_SECONDS'] = int(os.getenv('RECONCILE_SECONDS', '30'))
    app.config['STAFF_ADMIN_PASSWORD'] = os.getenv('STAFF_ADMIN_PASSWORD', 'change-me-admin')
    app.config['STAFF_PASSWORD'] = os.getenv('STAFF_PASSWORD', 'change-me')
    app.config['RABBIT_HOST'] = os.getenv('RABBIT_HOST')
    app.config['RABBIT_PORT'] = int(os.getenv('RABBIT_PORT', '5672'))
    app.config['RABBIT_VHOST'] = os.getenv('RABBIT_VHOST', '/')
    app.config['RABBIT_USER'] = os.getenv('RABBIT_USER', 'guest')
    app.config['RABBIT_PASS'] = os.getenv('RABBIT_PASS', 'guest')
    app.config['RABBIT_EXCHANGE'] = os.getenv('RABBIT_EXCHANGE', 'pizzeria_changes')

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    session_factory = sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False)
    SessionLocal = scoped_session(session_factory)
    # Register every table on Base.metadata
    from .models import store_settings, customer, menu, order, review, audit  # noqa: F401

    jwt.init_app(app)

    from .services.credentials import is_token_revoked

    @jwt.token_in_blocklist_loader
    def check_revoked(jwt_header, jwt_payload):  # type: ignore
        return is_token_revoked(jwt_payload)

    # Realtime: committed row changes fan out through the change feed
    from .realtime.feed import ChangeFeed
    from .realtime.capture import install_change_capture
    feed = ChangeFeed()
    install_change_capture(session_factory, feed)
    app.extensions['change_feed'] = feed

    if app.config.get('RABBIT_HOST'):
        from .realtime.bridge import RabbitBridge
        bridge = RabbitBridge.from_config(app.config)
        bridge.attach(feed)
        app.extensions['rabbit_bridge'] = bridge
        app.logger.info('Change events bridged to RabbitMQ at %s', app.config['RABBIT_HOST'])

    from .services.store_status import StoreStatusGate, SqlStoreSettingsRepository
    gate = StoreStatusGate(
        SqlStoreSettingsRepository(get_db),
        feed,
        support_phone=app.config['SUPPORT_PHONE'],
        reconcile_seconds=app.config['RECONCILE_SECONDS'],
    )
    # Subscribe only; the first fetch happens lazily once tables exist
    gate.open(fetch=False)
    app.extensions['store_gate'] = gate

    from .routes.auth import auth_bp
    from .routes.store import store_bp
    from .routes.menu import menu_bp
    from .routes.orders import orders_bp
    from .routes.realtime import realtime_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(store_bp, url_prefix='/store')
    app.register_blueprint(menu_bp, url_prefix='/menu')
    app.register_blueprint(orders_bp, url_prefix='/orders')
    app.register_blueprint(realtime_bp, url_prefix='/realtime')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                }
            }
            return payload, e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error'
            }
        }, 500

    from .openapi import build_openapi_spec

    @app.route('/openapi.json')
    def openapi_spec():
        return build_openapi_spec()

    @app.route('/docs')
    def docs_index():
        # Lightweight HTML referencing Redoc CDN (no local install) for quick browsing
        return (
            "<!DOCTYPE html><html><head><title>Pizzeria API Docs</title>"
            "<link rel=\"stylesheet\" href=\"https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.css\" />"
            "</head><body><redoc spec-url='/openapi.json'></redoc>"
            "<script src='https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.js'></script>"
            "</body></html>"
        )

    return app


def get_db():
    return SessionLocal()
