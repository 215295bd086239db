import os
from flask import Flask
from medsearch.extensions import db, migrate, jwt, limiter, cors
from medsearch.utils.encryption_util import encryptor
from medsearch.utils.error_handlers import register_error_handlers
from medsearch.commands import register_commands
from config import config


def create_app(config_name=None):
    app = Flask(__name__)
    config_name = config_name or os.getenv('FLASK_CONFIG', 'default')
    config_class = config[config_name]
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    cors.init_app(
        app,
        origins=app.config['ALLOWED_ORIGINS'],
        supports_credentials=True,
        allow_headers=['Content-Type', 'Authorization', 'If-Match'],
        expose_headers=['ETag'],
        methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS']
    )

    # Initialize custom utilities
    encryptor.init_app(app)

    # Initialize app with config
    config_class.init_app(app)

    # Register models and blueprints
    from medsearch import models  # noqa: F401
    from medsearch.api import api_bp, health_bp
    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(health_bp)

    # Register error handlers and commands
    register_error_handlers(app)
    register_commands(app)

    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        from medsearch.models.system_models import RevokedToken
        jti = jwt_payload.get('jti')
        if not jti:
            return False
        return RevokedToken.query.filter_by(jti=jti).first() is not None

    @jwt.token_verification_loader
    def reject_role_link_tokens(jwt_header, jwt_payload):
        # Role-assignment link tokens are not session tokens
        return jwt_payload.get('purpose') is None

    return app
