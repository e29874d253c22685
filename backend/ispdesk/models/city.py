"""City model - the top-level grouping for customers."""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ispdesk.db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from ispdesk.models.customer import Customer


class City(Base, TimestampMixin):
    """A service area; deleting it deletes every customer in it."""

    __tablename__ = "cities"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    customers: Mapped[list["Customer"]] = relationship(
        "Customer",
        back_populates="city",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<City {self.id} ({self.name})>"
