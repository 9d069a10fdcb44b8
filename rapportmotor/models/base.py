"""
SQLAlchemy bas och databasanslutning
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from rapportmotor.config import BASE_DIR, DATABASE_URL

if DATABASE_URL.startswith("sqlite:///") and str(BASE_DIR) in DATABASE_URL:
    (BASE_DIR / "data").mkdir(parents=True, exist_ok=True)

# Skapa engine
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Bas för alla modeller
Base = declarative_base()


def get_db():
    """Dependency för att få databas-session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Initiera databasen och skapa alla tabeller"""
    Base.metadata.create_all(bind=bind or engine)
