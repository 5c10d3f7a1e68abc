from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from splitbook.core.config import settings

Base = declarative_base()


def make_engine(url: str, **kwargs):
    return create_async_engine(url, echo=False, pool_pre_ping=True, **kwargs)


def make_session_factory(bind):
    return sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False
    )


engine = make_engine(settings.DATABASE_URL)

async_session = make_session_factory(engine)
