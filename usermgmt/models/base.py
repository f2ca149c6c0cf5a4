# usermgmt/models/base.py
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    # DB 多半存 naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_uuid() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    pass
