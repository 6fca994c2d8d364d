"""Exclusive-arc actor columns shared by audited tables."""

from sqlalchemy import BigInteger, CheckConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column


class ActorColumnsMixin:
    """Three nullable columns of which exactly one identifies the actor."""

    web_user_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    telegram_user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    system_identifier: Mapped[str | None] = mapped_column(Text, nullable=True)


def actor_exclusive_arc(name: str) -> CheckConstraint:
    """Return a CHECK constraint requiring exactly one populated actor column."""
    return CheckConstraint(
        "(CASE WHEN web_user_id IS NOT NULL THEN 1 ELSE 0 END"
        " + CASE WHEN telegram_user_id IS NOT NULL THEN 1 ELSE 0 END"
        " + CASE WHEN system_identifier IS NOT NULL THEN 1 ELSE 0 END) = 1",
        name=name,
    )
