from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=flask_app.config.get('CORS_ORIGINS', []))

    # Import and register blueprints here
    from app.main import main
    flask_app.register_blueprint(main)

    from app.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from app.api.targets import targets
    flask_app.register_blueprint(targets, url_prefix='/api/games/<game_id>')

    # Domain errors carry the ids involved; render them as JSON with a matching status
    from app.services.games.errors import AssassinsError

    @flask_app.errorhandler(AssassinsError)
    def handle_assassins_error(exc):
        flask_app.logger.info(f"[error] {exc.code} status={exc.http_status} {exc}")
        return jsonify(exc.to_dict()), exc.http_status

    # Flask-Login user loader
    from app.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Login required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from app.models import User, Game
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            users = [
                ('admin@example.com', 'Ada', 'Admin'),
                ('alice@example.com', 'Alice', 'Archer'),
                ('bob@example.com', 'Bob', 'Baker'),
                ('cara@example.com', 'Cara', 'Cole'),
            ]
            for email, first_name, surname in users:
                user = User(email=email, first_name=first_name, surname=surname)
                user.set_password('password')
                db.session.add(user)

            game = Game(name='Demo game')
            game.admins = ['admin@example.com']
            db.session.add(game)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
