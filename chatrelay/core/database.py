from sqlmodel import SQLModel, create_engine, Session

from chatrelay.core.config import settings

engine = create_engine(
    f"sqlite:///{settings.db_path}",
    echo=settings.debug,
    connect_args={"check_same_thread": False},
)


def init_db() -> None:
    import chatrelay.models  # noqa: F401 - ensure models are registered
    SQLModel.metadata.create_all(engine)


def open_session() -> Session:
    """Open a session outside the request scope (streams, background jobs)."""
    return Session(engine)


def get_session():
    with open_session() as session:
        yield session
