from flask import Flask, g, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()

SEED_USERS = ['testuser1', 'testuser2', 'testuser3']


def create_app(config_class=Config):
    flask_app = Flask(
        __name__,
        static_folder=getattr(config_class, 'STATIC_FOLDER', None),
        static_url_path='',
    )
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    # Bearer tokens only; never fall back to a cookie session
    login_manager.session_protection = None
    CORS(
        flask_app,
        supports_credentials=True,
        origins=flask_app.config['CORS_ORIGINS'],
        methods=['GET', 'POST', 'PUT', 'DELETE'],
    )

    from codeclicker.errors import ApiError, NotFound, Unauthenticated
    from codeclicker.services.auth import load_principal_from_request

    login_manager.request_loader(load_principal_from_request)

    @login_manager.unauthorized_handler
    def unauthorized():
        failure = g.pop('auth_failure', None) or Unauthenticated()
        return jsonify(failure.to_dict()), failure.status_code

    @flask_app.errorhandler(ApiError)
    def handle_api_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(404)
    def handle_not_found(exc):
        return jsonify(NotFound().to_dict()), 404

    from codeclicker.main import main
    flask_app.register_blueprint(main)

    from codeclicker.api.progress import progress
    flask_app.register_blueprint(progress)

    @click.command('init-db')
    def init_db_command():
        """Creates any missing tables."""
        import codeclicker.models  # noqa: F401
        with flask_app.app_context():
            db.create_all()
        click.echo('Database tables created.')

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from codeclicker.services.auth import register_user
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            for username in SEED_USERS:
                register_user({'username': username, 'password': 'password'})

            click.echo('Database has been reset and seeded!')

    flask_app.cli.add_command(init_db_command)
    flask_app.cli.add_command(db_reset_command)

    return flask_app
