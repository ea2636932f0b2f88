"""Explicit engine and session handle for the venue store."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from venuerecon.config.storage import get_database_config

from .migrations import upgrade_head
from .repositories import SqlAlchemyVenueStore

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class VenueDatabase:
    """Owns one engine and its session factory; pass it to whatever needs the store."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory: sessionmaker[Session] = sessionmaker(
            bind=engine, expire_on_commit=False
        )

    @classmethod
    def open(cls, database_uri: str | None = None, *, migrate: bool = True) -> VenueDatabase:
        uri = database_uri or get_database_config().uri
        engine = create_engine(uri, future=True)
        if migrate:
            upgrade_head(engine=engine)
        log.debug("Opened venue database %s", engine.url.render_as_string(hide_password=True))
        return cls(engine)

    def store(self) -> SqlAlchemyVenueStore:
        return SqlAlchemyVenueStore(self.session_factory)

    def dispose(self) -> None:
        self.engine.dispose()

    def __enter__(self) -> VenueDatabase:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.dispose()
