import os

import click
from dotenv import load_dotenv
from flask import Flask

from .logger import init_logging
from .models import db
from .paths import default_database_url
from .setup_db import init_db


def create_app(config=None):
    # Load environment variables
    load_dotenv()

    app = Flask(__name__)
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    if config:
        app.config.update(config)
    if 'SQLALCHEMY_DATABASE_URI' not in app.config:
        app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('DATABASE_URL') or default_database_url()

    if not app.testing:
        init_logging(os.getenv('LOG_LEVEL'))

    db.init_app(app)

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables before creating them.')
    def init_db_command(drop):
        """Create the chat tables and indexes."""
        init_db(drop=drop)
        click.echo('Database setup complete!')

    return app
