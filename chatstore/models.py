import sqlite3

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import DDL, event, func
from sqlalchemy.engine import Engine
from sqlalchemy.orm import object_session

from .errors import ConstraintViolation
from .timeutil import utcnow

db = SQLAlchemy()


@event.listens_for(Engine, 'connect')
def enable_foreign_keys(dbapi_connection, connection_record):
    # Cascading deletes are the only thing keeping rows from being orphaned
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys = ON')
        cursor.close()


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    avatar_hash = db.Column(db.String(128))

    owned_rooms = db.relationship('Room', backref='owner', lazy=True,
                                  cascade='all', passive_deletes=True)
    memberships = db.relationship('RoomMember', backref='user', lazy=True,
                                  cascade='all', passive_deletes=True)
    messages = db.relationship('Message', backref='user', lazy=True,
                               cascade='all', passive_deletes=True)

    __table_args__ = (
        db.Index('uq_users_username_lower', func.lower(username), unique=True),
        db.CheckConstraint('length(username) > 0', name='ck_users_username_not_empty'),
        {'sqlite_autoincrement': True},
    )

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'created_at': self.created_at.isoformat(),
            'avatar_hash': self.avatar_hash,
        }

    def __repr__(self):
        return f'<User {self.username}>'


class Room(db.Model):
    __tablename__ = 'rooms'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'),
                         nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    icon_hash = db.Column(db.String(128))
    # NULL means the room has no password gate
    password_hash = db.Column(db.String(255))

    members = db.relationship('RoomMember', backref='room', lazy=True,
                              cascade='all', passive_deletes=True)
    messages = db.relationship('Message', backref='room', lazy=True,
                               cascade='all', passive_deletes=True)

    __table_args__ = (
        db.Index('uq_rooms_name_lower', func.lower(name), unique=True),
        db.CheckConstraint('length(name) > 0', name='ck_rooms_name_not_empty'),
        {'sqlite_autoincrement': True},
    )

    @property
    def requires_password(self):
        return self.password_hash is not None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'owner_id': self.owner_id,
            'created_at': self.created_at.isoformat(),
            'icon_hash': self.icon_hash,
            'requires_password': self.requires_password,
        }

    def __repr__(self):
        return f'<Room {self.name}>'


class RoomMember(db.Model):
    __tablename__ = 'rooms_users'

    room_id = db.Column(db.Integer, db.ForeignKey('rooms.id', ondelete='CASCADE'), primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True)

    __table_args__ = (
        db.Index('idx_rooms_users_user', 'user_id'),
    )

    def to_dict(self):
        return {'room_id': self.room_id, 'user_id': self.user_id}


class Message(db.Model):
    __tablename__ = 'messages'

    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.Index('idx_messages_room_ts', 'room_id', 'timestamp'),
        db.CheckConstraint('length(content) > 0', name='ck_messages_content_not_empty'),
        {'sqlite_autoincrement': True},
    )

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'user_id': self.user_id,
            'username': self.user.username,
            'content': self.content,
            'timestamp': self.timestamp.isoformat(),
        }

    def __repr__(self):
        return f'<Message {self.id} by {self.user_id} in {self.room_id}>'


@event.listens_for(Message, 'before_update')
def reject_message_update(mapper, connection, target):
    session = object_session(target)
    if session is not None and session.is_modified(target, include_collections=False):
        raise ConstraintViolation(f'Message {target.id} is append-only')


# The mapper hook above only sees ORM flushes; Core and bulk updates hit this
event.listen(
    Message.__table__,
    'after_create',
    DDL(
        'CREATE TRIGGER trg_messages_append_only BEFORE UPDATE ON messages '
        "BEGIN SELECT RAISE(ABORT, 'messages are append-only'); END"
    ).execute_if(dialect='sqlite'),
)
