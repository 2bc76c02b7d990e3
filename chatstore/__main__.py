from chatstore import create_app
from chatstore.setup_db import init_db

app = create_app()

with app.app_context():
    init_db()
print("Database setup complete!")
