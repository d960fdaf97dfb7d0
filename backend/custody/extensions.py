# Overview: Flask extension instances for the custody store handle and migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Unbound until create_app() calls init_app(); each app owns its engine.
db = SQLAlchemy()
migrate = Migrate()
