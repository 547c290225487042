# marketplace/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from marketplace.utils.settings import DATABASE_URL

engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()


#sesja per request, zamykana po odpowiedzi
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
