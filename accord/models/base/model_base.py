from datetime import datetime

from sqlalchemy.orm import declarative_base, object_session


def utcnow_without_ms():
    # type: () -> datetime
    """Return the current time without microseconds.

    Used as the default modification time for stored documents.  MySQL strips microseconds and
    SQLite keeps them, so dropping them keeps rows read back from either backend comparable.
    """
    return datetime.utcnow().replace(microsecond=0)


class _Model(object):
    """ Custom model mixin with helper methods. """

    @property
    def session(self):
        return object_session(self)

    @classmethod
    def get(cls, session, **kwargs):
        instance = session.query(cls).filter_by(**kwargs).scalar()
        if instance:
            return instance
        return None

    def add(self, session):
        session._add(self)
        return self

    def delete(self, session):
        session._delete(self)
        return self


Model = declarative_base(cls=_Model)
