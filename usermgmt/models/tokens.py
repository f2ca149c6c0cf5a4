# usermgmt/models/tokens.py
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from usermgmt.models.base import Base, new_uuid, utcnow


class TokenPair(Base):
    """一次登入的 access / refresh token；登出或重新登入時撤銷（不刪除，保留稽核）。"""

    __tablename__ = "tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
    access_token_expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    refresh_token_expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # 只是反向參照，不設外鍵：刪除使用者後仍保留 token 紀錄
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    is_revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_tokens_user_id_is_revoked", "user_id", "is_revoked"),
    )
