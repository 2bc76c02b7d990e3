"""
Read and write operations against the chat schema.

Every write runs in its own transaction and is committed before returning.
Uniqueness and referential integrity are left to the storage engine: a
failed write is rolled back and surfaced as a StoreError subclass, never
retried here.
"""
import logging
from contextlib import contextmanager

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError

from .errors import NotFound, translate_integrity_error
from .models import Message, Room, RoomMember, User, db
from .timeutil import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

TIMELINE_ORDERS = ('asc', 'desc')


@contextmanager
def _transaction(action):
    try:
        yield
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        error = translate_integrity_error(exc, action)
        logger.info('%s (%s)', error.message, error.detail)
        raise error from exc
    except Exception:
        db.session.rollback()
        raise


# Users

def create_user(username, password_hash, avatar_hash=None):
    user = User(username=username, password_hash=password_hash, avatar_hash=avatar_hash)
    with _transaction(f'create user {username!r}'):
        db.session.add(user)
    logger.debug('Created user %s (%r)', user.id, username)
    return user.id


def get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound(f'User {user_id} does not exist')
    return user


def find_user_by_username(username):
    return User.query.filter(func.lower(User.username) == func.lower(username)).first()


def delete_user(user_id):
    """Delete a user with their rooms, memberships and messages."""
    with _transaction(f'delete user {user_id}'):
        result = db.session.execute(delete(User).where(User.id == user_id))
    if result.rowcount == 0:
        raise NotFound(f'User {user_id} does not exist')
    logger.debug('Deleted user %s', user_id)


# Rooms

def create_room(name, owner_id, icon_hash=None, password_hash=None):
    room = Room(name=name, owner_id=owner_id, icon_hash=icon_hash, password_hash=password_hash)
    with _transaction(f'create room {name!r}'):
        db.session.add(room)
    logger.debug('Created room %s (%r) owned by %s', room.id, name, owner_id)
    return room.id


def get_room(room_id):
    room = db.session.get(Room, room_id)
    if room is None:
        raise NotFound(f'Room {room_id} does not exist')
    return room


def find_room_by_name(name):
    return Room.query.filter(func.lower(Room.name) == func.lower(name)).first()


def delete_room(room_id):
    """Delete a room with its memberships and messages."""
    with _transaction(f'delete room {room_id}'):
        result = db.session.execute(delete(Room).where(Room.id == room_id))
    if result.rowcount == 0:
        raise NotFound(f'Room {room_id} does not exist')
    logger.debug('Deleted room %s', room_id)


# Memberships

def add_membership(room_id, user_id):
    # Core insert so a duplicate pair always reaches the primary key
    with _transaction(f'add user {user_id} to room {room_id}'):
        db.session.execute(insert(RoomMember).values(room_id=room_id, user_id=user_id))
    logger.debug('User %s joined room %s', user_id, room_id)


def remove_membership(room_id, user_id):
    with _transaction(f'remove user {user_id} from room {room_id}'):
        result = db.session.execute(
            delete(RoomMember).where(RoomMember.room_id == room_id, RoomMember.user_id == user_id)
        )
    logger.debug('User %s left room %s (%d rows)', user_id, room_id, result.rowcount)
    return result.rowcount


def is_member(room_id, user_id):
    stmt = select(RoomMember).where(RoomMember.room_id == room_id, RoomMember.user_id == user_id)
    return db.session.execute(stmt).first() is not None


def list_room_members(room_id):
    get_room(room_id)
    return User.query.join(RoomMember, RoomMember.user_id == User.id)\
        .filter(RoomMember.room_id == room_id)\
        .order_by(User.id)\
        .all()


def fetch_user_rooms(user_id):
    """Rooms the user belongs to, looked up through the membership user index."""
    get_user(user_id)
    return Room.query.join(RoomMember, RoomMember.room_id == Room.id)\
        .filter(RoomMember.user_id == user_id)\
        .order_by(Room.id)\
        .all()


# Messages

def post_message(room_id, user_id, content, timestamp=None):
    sent_at = parse_timestamp(timestamp) if timestamp is not None else utcnow()
    message = Message(room_id=room_id, user_id=user_id, content=content, timestamp=sent_at)
    with _transaction(f'post message to room {room_id}'):
        db.session.add(message)
    logger.debug('User %s posted message %s in room %s', user_id, message.id, room_id)
    return message.id


def fetch_room_timeline(room_id, order='asc', page=1, per_page=50):
    """
    One page of a room's messages ordered by send time.

    Ties on timestamp fall back to insertion order so paging is stable.
    Returns a flask_sqlalchemy Pagination; ``items`` holds the messages.
    """
    if order not in TIMELINE_ORDERS:
        raise ValueError(f'order must be one of {TIMELINE_ORDERS}, got {order!r}')
    get_room(room_id)

    if order == 'asc':
        ordering = (Message.timestamp.asc(), Message.id.asc())
    else:
        ordering = (Message.timestamp.desc(), Message.id.desc())

    return Message.query.filter_by(room_id=room_id)\
        .order_by(*ordering)\
        .paginate(page=page, per_page=per_page, error_out=False)
