"""Transaction and concurrency helpers for per-game writes.

Writes to one game's target graph are serialized by a per-game lock and run
inside a single database transaction. Stacking order on a service function::

    @retry_on_contention
    @serialized
    @transactional
    def report_kill(game_id, ...):
        ...

The first positional argument of a decorated function must be the game id.
"""
from contextlib import contextmanager
from functools import wraps
import threading
import weakref

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from app import db
from app.models import Game
from .errors import AssassinsError, Contention, GameNotFound


# Entries vanish once no caller holds the lock
_game_locks = weakref.WeakValueDictionary()
_game_locks_guard = threading.Lock()


def _lock_for(game_id: int) -> threading.Lock:
    with _game_locks_guard:
        return _game_locks.setdefault(game_id, threading.Lock())


def _game_id_of(func, args, kwargs):
    if args:
        return args[0]
    if 'game_id' in kwargs:
        return kwargs['game_id']
    raise TypeError(f"{func.__name__} needs game_id as its first argument")


@contextmanager
def game_lock(game_id: int, timeout: float = None):
    """Hold the in-process lock of one game. Raises Contention on timeout."""
    if timeout is None:
        timeout = float(current_app.config.get('GAME_LOCK_TIMEOUT_SEC', 5))
    lock = _lock_for(game_id)
    if not lock.acquire(timeout=timeout):
        current_app.logger.warning(f"[contention] game={game_id} lock wait exceeded {timeout}s")
        raise Contention(game_id, 'lock wait timed out')
    try:
        yield
    finally:
        lock.release()


def lock_game_row(game_id: int) -> Game:
    """SELECT the game row FOR UPDATE NOWAIT (a no-op on SQLite)."""
    try:
        game = (
            Game.query.filter_by(id=game_id)
            .with_for_update(nowait=True)
            .execution_options(populate_existing=True)
            .first()
        )
    except OperationalError as exc:
        raise Contention(game_id, 'game row is locked') from exc
    if not game:
        raise GameNotFound(game_id)
    return game


def transactional(func):
    """Commit when ``func`` returns, roll back and re-raise when it fails.

    A stale version (another writer changed a row we read) becomes Contention.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        game_id = _game_id_of(func, args, kwargs)
        try:
            result = func(*args, **kwargs)
            db.session.commit()
            return result
        except StaleDataError as exc:
            db.session.rollback()
            current_app.logger.warning(f"[txn-rollback] {func.__name__} game={game_id} stale row: {exc}")
            raise Contention(game_id, 'stale row version') from exc
        except AssassinsError as exc:
            db.session.rollback()
            current_app.logger.info(f"[txn-rollback] {func.__name__} game={game_id} {exc.code}: {exc}")
            raise
        except Exception as exc:
            db.session.rollback()
            current_app.logger.error(f"[txn-rollback] {func.__name__} game={game_id} failed: {exc}", exc_info=True)
            raise

    return wrapper


def serialized(func):
    """Run ``func`` while holding the game's lock."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        with game_lock(_game_id_of(func, args, kwargs)):
            return func(*args, **kwargs)

    return wrapper


def retry_on_contention(func):
    """Re-run ``func`` from scratch after Contention, up to CONTENTION_RETRIES times."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        retries = int(current_app.config.get('CONTENTION_RETRIES', 3))
        attempt = 0
        while True:
            try:
                return func(*args, **kwargs)
            except Contention:
                if attempt >= retries:
                    raise
                attempt += 1
                # Drop cached rows so the next attempt re-reads storage
                db.session.expire_all()
                current_app.logger.info(f"[contention] {func.__name__} retry {attempt}/{retries}")

    return wrapper
