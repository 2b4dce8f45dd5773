# Overview: Flask extension instances for the database pool and schema migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Bound to the app in create_app(); the engine pool lives for the app's lifetime
# and sessions are removed at the end of every request context.
db = SQLAlchemy()
migrate = Migrate()
