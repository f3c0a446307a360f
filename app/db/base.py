from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Models register on this Base when app.db.models is imported
# (init_db, alembic/env.py and the test fixtures all do so)
