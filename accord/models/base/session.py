import logging
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from sqlalchemy import create_engine
from sqlalchemy.exc import ArgumentError, OperationalError
from sqlalchemy.orm import Session as _Session, sessionmaker

from accord.settings import InvalidSettingsError

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def redacted_url(url):
    # type: (str) -> str
    """Remove any password from a database URL, returning a version suitable for logging."""
    parsed_url = urlparse(url)
    if parsed_url.password is None:
        return url
    host = parsed_url.netloc.rsplit("@", 1)[-1]
    netloc = f"{parsed_url.username}:<REDACTED>@{host}"
    return parsed_url._replace(netloc=netloc).geturl()


def get_db_engine(url):
    # type: (str) -> Engine
    try:
        if "sqlite:" in url.lower():
            engine = create_engine(url, pool_recycle=300)
        else:
            engine = create_engine(url, max_overflow=25, pool_recycle=300)
    except (ArgumentError, OperationalError):
        logging.exception("Can't create database engine for %s", redacted_url(url))
        raise InvalidSettingsError("Invalid arguments. Can't create database engine")
    return engine


class SessionWithoutAdd(_Session):
    """Custom session to block add and delete.

    Documents must be added and removed through the methods on the models so that every write
    goes through the same code path.
    """

    _add = _Session.add
    _delete = _Session.delete

    def add(self, *args, **kwargs):
        raise NotImplementedError("Use add method on models instead.")

    def add_all(self, *args, **kwargs):
        raise NotImplementedError("Use add method on models instead.")

    def delete(self, *args, **kwargs):
        raise NotImplementedError("Use delete method on models instead.")


Session = sessionmaker(class_=SessionWithoutAdd)
