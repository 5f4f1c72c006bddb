from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from nido.core.ids import gen_id

from nido.models.base import Base, TimestampMixin


class Owner(TimestampMixin, Base):
    __tablename__ = "owners"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("usr"))
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # "owner" | "admin"
    role: Mapped[str] = mapped_column(String(30), nullable=False, default="owner")
