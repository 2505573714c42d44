from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from cholera_triage.infrastructure.db.engine import get_engine

SessionFactory = Callable[[], AbstractContextManager[Session]]


def make_session_scope(bind: Engine) -> SessionFactory:
    """Build a transactional scope factory bound to ``bind``.

    Services receive the result as ``session_factory``; each ``with`` block is
    one transaction, committed on success and rolled back on any exception.
    """
    session_local = sessionmaker(bind=bind, autoflush=False, autocommit=False, expire_on_commit=False, future=True)

    @contextmanager
    def _scope() -> Iterator[Session]:
        session: Session = session_local()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return _scope


engine = get_engine()
session_scope = make_session_scope(engine)
