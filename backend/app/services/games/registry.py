from flask import current_app

from app import db
from app.models import Game, GameStatus
from .errors import GameNotFound


def find_game(game_id: int) -> Game:
    game = db.session.get(Game, game_id)
    if not game:
        raise GameNotFound(game_id)
    return game


def get_status(game_id: int) -> GameStatus:
    return find_game(game_id).status


def create_game(name: str, admins, whitelisted_emails=()) -> Game:
    game = Game(name=name, status=GameStatus.SETUP)
    game.admins = list(admins)
    game.whitelisted_emails = list(whitelisted_emails)
    db.session.add(game)
    db.session.commit()
    current_app.logger.info(f"[game-create] game={game.id} admins={game.admins}")
    return game


def start_game(game: Game) -> None:
    """Flip SETUP to IN_PROGRESS. Caller commits."""
    if game.status == GameStatus.SETUP:
        game.status = GameStatus.IN_PROGRESS
        db.session.add(game)
        current_app.logger.info(f"[game-start] game={game.id}")


def finish_game(game: Game) -> None:
    """Flip the game to FINISHED. Caller commits."""
    if game.status != GameStatus.FINISHED:
        game.status = GameStatus.FINISHED
        db.session.add(game)
        current_app.logger.info(f"[game-finish] game={game.id}")
