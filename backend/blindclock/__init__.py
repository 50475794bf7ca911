from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import json
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

DEMO_BLIND_STRUCTURE = [
    {'smallBlind': 25, 'bigBlind': 50, 'duration': 20},
    {'smallBlind': 50, 'bigBlind': 100, 'duration': 20},
    {'smallBlind': 75, 'bigBlind': 150, 'bigBlindAnte': 150, 'duration': 20},
    {'isBreak': True, 'duration': 10},
    {'smallBlind': 100, 'bigBlind': 200, 'bigBlindAnte': 200, 'duration': 20},
]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from blindclock.main import main
    flask_app.register_blueprint(main)

    from blindclock.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from blindclock.api.blind_structures import blind_structures
    flask_app.register_blueprint(blind_structures, url_prefix='/api/blind-structures')

    from blindclock.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from blindclock.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from blindclock.models import Game
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            users = {}
            for name in ['director', 'player1', 'player2']:
                user = User(username=name)
                user.set_password('password')
                db.session.add(user)
                users[name] = user
            db.session.flush()

            demo = Game(name='Friday Night Freezeout', creator=users['director'])
            demo.blind_structure = json.dumps(DEMO_BLIND_STRUCTURE)
            db.session.add(demo)
            db.session.commit()
            print(f'Database has been reset and seeded! Demo game: {demo.game_code}')

    flask_app.cli.add_command(db_reset_command)

    from blindclock.cli import watch_clock_command
    flask_app.cli.add_command(watch_clock_command)

    return flask_app
