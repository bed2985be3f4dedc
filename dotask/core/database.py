from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """Engine avec pool borné (25 connexions, recyclées toutes les 5 minutes)"""
    if database_url.startswith("sqlite"):
        # SQLite: pas de dimensionnement de pool
        return create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        echo=False,
        pool_size=25,
        max_overflow=0,
        pool_recycle=300,
        pool_pre_ping=True,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    # enregistre les modèles sur Base.metadata avant create_all
    import dotask.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
