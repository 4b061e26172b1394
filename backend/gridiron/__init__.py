from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

SEED_GAME_CODE = 'SEED01'
SEED_QUESTIONS = [
    ('Which team won Super Bowl I?', ['Green Bay Packers', 'Kansas City Chiefs', 'Oakland Raiders', 'Baltimore Colts'], 0, 'easy'),
    ('How many points is a safety worth?', ['1', '2', '3', '6'], 1, 'easy'),
    ('How many yards must the offense gain for a first down?', ['5', '10', '15', '20'], 1, 'easy'),
    ('Which position usually snaps the ball?', ['Guard', 'Center', 'Tackle', 'Tight end'], 1, 'medium'),
    ('How long is a regulation NFL quarter?', ['10 minutes', '12 minutes', '15 minutes', '20 minutes'], 2, 'medium'),
    ('Who holds the NFL record for career rushing yards?', ['Walter Payton', 'Barry Sanders', 'Emmitt Smith', 'Jim Brown'], 2, 'hard'),
]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from gridiron.main import main
    flask_app.register_blueprint(main)

    from gridiron.api.lobby import lobby
    flask_app.register_blueprint(lobby, url_prefix='/api/lobby')

    from gridiron.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from gridiron.api.trivia import trivia
    flask_app.register_blueprint(trivia, url_prefix='/api/trivia')

    from gridiron.services.errors import ActionError

    @flask_app.errorhandler(ActionError)
    def handle_action_error(exc):
        flask_app.logger.info(f"[action-error] status={exc.status_code} message={exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    # Register Socket.IO event handlers on the initialized socketio instance
    from gridiron.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from gridiron.models import Game, Player, Question, ROLE_REF, ROLE_PLAYER
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            for text, choices, correct_index, difficulty in SEED_QUESTIONS:
                db.session.add(Question(text=text, choices=choices, correct_index=correct_index,
                                        difficulty=difficulty, category='Sports', type='multiple'))

            game = Game(code=SEED_GAME_CODE, mode='football')
            db.session.add(game)
            db.session.commit()
            host = Player(game_id=game.id, display_name='Coach Host', role=ROLE_REF, ready=True)
            db.session.add(host)
            db.session.add(Player(game_id=game.id, display_name='Player One', role=ROLE_PLAYER, side='home'))
            db.session.commit()
            game.host_player_id = host.id
            db.session.commit()
            print(f'Database has been reset and seeded! Demo lobby: {SEED_GAME_CODE}')

    @click.command('import-questions')
    @click.option('--amount', default=20, show_default=True, help='Number of questions to fetch.')
    @click.option('--difficulty', type=click.Choice(['easy', 'medium', 'hard']), default=None)
    @click.option('--category', default=None, help='Category name, e.g. "sports".')
    def import_questions_command(amount, difficulty, category):
        """Imports multiple-choice questions from Open Trivia DB."""
        from gridiron.services.questions import category_id, import_open_trivia_batch
        with flask_app.app_context():
            cat = category_id(category) if category else None
            if category and cat is None:
                raise click.BadParameter(f'Unknown category {category!r}', param_hint='--category')
            try:
                count = import_open_trivia_batch(amount, difficulty, cat)
            except ActionError as exc:
                raise click.ClickException(exc.message)
            print(f'Imported {count} questions from OTDB.')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(import_questions_command)

    return flask_app
