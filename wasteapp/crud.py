import logging
from contextlib import contextmanager
from typing import Optional, List, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select, or_

from .errors import Conflict, StoreFailure
from .models import User, Bin, Complaint, Schedule
from .store import Store

logger = logging.getLogger(__name__)


def get_user_by_username(session: Session, username: str) -> Optional[User]:
    return session.exec(select(User).where(User.username == username)).first()

def create_user(session: Session, username: str, role: str) -> User:
    return create_row(session, User, username=username, role=role)

def list_users(session: Session, roles: Optional[Sequence[str]] = None) -> List[User]:
    stmt = select(User).order_by(User.id)
    if roles is not None:
        stmt = stmt.where(User.role.in_(roles))
    return session.exec(stmt).all()

def create_row(session: Session, model, **data):
    row = model(**data)
    session.add(row)
    session.commit()
    session.refresh(row)
    return row

def update_row(session: Session, model, row_id: int, **changes):
    row = session.get(model, row_id)
    if not row:
        return None
    for k, v in changes.items():
        setattr(row, k, v)
    session.add(row)
    session.commit()
    session.refresh(row)
    return row

def list_bins(session: Session, status: Optional[str] = None) -> List[Bin]:
    stmt = select(Bin).order_by(Bin.id)
    if status:
        stmt = stmt.where(Bin.status == status)
    return session.exec(stmt).all()

def list_complaints(session: Session, user_id: Optional[int] = None) -> List[Complaint]:
    stmt = select(Complaint).order_by(Complaint.created_at.desc(), Complaint.id.desc())
    if user_id is not None:
        stmt = stmt.where(Complaint.user_id == user_id)
    return session.exec(stmt).all()

def list_schedules(session: Session, user_id: Optional[int] = None,
                   worker_id: Optional[int] = None) -> List[Schedule]:
    stmt = select(Schedule).order_by(
        Schedule.collection_date.desc(),
        Schedule.collection_time.desc(),
        Schedule.id.desc(),
    )
    conditions = []
    if user_id is not None:
        conditions.append(Schedule.user_id == user_id)
    if worker_id is not None:
        conditions.append(Schedule.assigned_worker_id == worker_id)
    if conditions:
        stmt = stmt.where(or_(*conditions))
    return session.exec(stmt).all()


class SqlStore(Store):
    """Store backed by SQLModel tables. One session and commit per call."""

    def __init__(self, engine):
        self.engine = engine

    @contextmanager
    def _session(self):
        with Session(self.engine) as session:
            try:
                yield session
            except IntegrityError as e:
                session.rollback()
                raise Conflict(str(e.orig)) from e
            except SQLAlchemyError as e:
                session.rollback()
                logger.exception("Store operation failed")
                raise StoreFailure() from e

    def get_user(self, user_id):
        with self._session() as session:
            return session.get(User, user_id)

    def get_user_by_username(self, username):
        with self._session() as session:
            return get_user_by_username(session, username)

    def create_user(self, username, role):
        with self._session() as session:
            return create_user(session, username, role)

    def list_users(self, roles=None):
        with self._session() as session:
            return list_users(session, roles)

    def get_bin(self, bin_id):
        with self._session() as session:
            return session.get(Bin, bin_id)

    def create_bin(self, **data):
        with self._session() as session:
            return create_row(session, Bin, **data)

    def list_bins(self, status=None):
        with self._session() as session:
            return list_bins(session, status)

    def update_bin(self, bin_id, **changes):
        with self._session() as session:
            return update_row(session, Bin, bin_id, **changes)

    def get_complaint(self, complaint_id):
        with self._session() as session:
            return session.get(Complaint, complaint_id)

    def create_complaint(self, **data):
        with self._session() as session:
            return create_row(session, Complaint, **data)

    def list_complaints(self, user_id=None):
        with self._session() as session:
            return list_complaints(session, user_id)

    def update_complaint(self, complaint_id, **changes):
        with self._session() as session:
            return update_row(session, Complaint, complaint_id, **changes)

    def get_schedule(self, schedule_id):
        with self._session() as session:
            return session.get(Schedule, schedule_id)

    def create_schedule(self, **data):
        with self._session() as session:
            return create_row(session, Schedule, **data)

    def list_schedules(self, user_id=None, worker_id=None):
        with self._session() as session:
            return list_schedules(session, user_id, worker_id)

    def update_schedule(self, schedule_id, **changes):
        with self._session() as session:
            return update_row(session, Schedule, schedule_id, **changes)
