from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from neurolink.errors import register_error_handlers
    register_error_handlers(flask_app)

    from neurolink.api.rounds import rounds
    flask_app.register_blueprint(rounds, url_prefix='/api/rounds')

    from neurolink.api.profiles import profiles
    flask_app.register_blueprint(profiles, url_prefix='/api/profiles')

    from neurolink.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/api/leaderboard')

    # Register Socket.IO event handlers on the initialized socketio instance
    from neurolink.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader: PIN-protected profiles are the login identities
    from neurolink.models import PlayerProfile

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(PlayerProfile, user_id)

    @flask_app.route('/health')
    def health():
        return {'status': 'ok'}

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the round, profile and daily tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
