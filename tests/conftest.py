"""
Gemensamma fixtures för testerna
"""
import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.insert(0, str(Path(__file__).parent.parent))

# Skriv aldrig till den riktiga databasen från testerna
os.environ.setdefault("RAPPORTMOTOR_DATABASE_URL", "sqlite://")

from rapportmotor.models import Base  # noqa: E402


@pytest.fixture
def engine():
    """SQLite i minnet, delad mellan sessioner inom testet"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    """Skapa en ny databas för varje test"""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
