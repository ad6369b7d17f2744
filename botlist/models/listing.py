from datetime import datetime

from sqlalchemy import JSON, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from botlist.models.base import Base


class Listing(Base):
    __tablename__ = "listings"

    # Discord client id of the listed bot; the primary key is the uniqueness guarantee
    id: Mapped[str] = mapped_column(String, primary_key=True)

    invite: Mapped[str | None] = mapped_column(Text, nullable=True)
    prefix: Mapped[str] = mapped_column(Text, nullable=False)
    short_desc: Mapped[str] = mapped_column(String(150), nullable=False)
    long_desc: Mapped[str] = mapped_column(Text, nullable=False)

    # immutable after creation
    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    additional_owner_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # identity snapshot taken at submission time
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    discriminator: Mapped[str | None] = mapped_column(String(10), nullable=True)
    avatar: Mapped[str | None] = mapped_column(String(120), nullable=True)

    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
