from flask import Flask
from bucketledger.core.extensions import db, migrate
from bucketledger.core.config import get_config
from typing import Optional


def create_app(config_name: Optional[str] = None):
    """Application factory pattern."""
    import os
    import logging
    from logging.handlers import RotatingFileHandler

    if config_name is None:
        config_name = os.getenv("APP_CONFIG", "production")

    app = Flask(__name__)

    # Load configuration
    app.config.from_object(get_config(config_name))

    # Setup logging to files
    if not app.debug and not app.testing:
        logs_dir = app.config['LOG_DIR']
        if not os.path.exists(logs_dir):
            os.makedirs(logs_dir)

        # Main application log
        file_handler = RotatingFileHandler(
            os.path.join(logs_dir, 'bucketledger.log'),
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        # Error log
        error_handler = RotatingFileHandler(
            os.path.join(logs_dir, 'errors.log'),
            maxBytes=10240000,
            backupCount=5
        )
        error_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        error_handler.setLevel(logging.ERROR)
        app.logger.addHandler(error_handler)

        # Module loggers (events, migration, errors) share the app handlers
        package_logger = logging.getLogger('bucketledger')
        package_logger.addHandler(file_handler)
        package_logger.addHandler(error_handler)

        # Set log level from config
        log_level = app.config.get('LOG_LEVEL', 'INFO')
        app.logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
        package_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        app.logger.info(f'BucketLedger startup - Config: {config_name}')

    # Initialize extensions
    db.init_app(app)
    # SQLite-specific migration settings
    migrate.init_app(
        app,
        db,
        render_as_batch=True,  # Required for SQLite ALTER operations
        compare_type=True
    )

    # Register blueprints
    from bucketledger.api.v1 import api_v1_bp
    app.register_blueprint(api_v1_bp)

    @app.route('/health')
    def health_check():
        """Health check endpoint for monitoring."""
        from sqlalchemy import text
        try:
            with db.engine.connect() as connection:
                connection.execute(text('SELECT 1'))
            return {'status': 'ok', 'message': 'Application healthy'}, 200
        except Exception as e:
            app.logger.error(f'Health check failed: {e}')
            return {'status': 'error', 'message': 'Database unavailable'}, 500

    # Import models for Alembic
    from bucketledger.modules.users.models import User
    from bucketledger.modules.budget.models import Bucket, Income, Expense, RecurringExpense
    from bucketledger.modules.rollover.models import RolloverRun, RolloverEntry

    # Register error handlers
    from bucketledger.core.errors import register_error_handlers
    register_error_handlers(app)

    # Register event handlers
    from bucketledger.core.events import register_default_handlers
    register_default_handlers()

    # Register CLI commands
    from bucketledger.core.cli import register_cli_commands
    register_cli_commands(app)

    return app
