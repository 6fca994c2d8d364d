"""Actor identities attached to detections and moderation actions.

An actor is exactly one of a web console user, a Telegram user, or the
system itself. Each case is its own frozen model; ``Actor`` is the tagged
union of the three, discriminated by ``kind``.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

SYSTEM_FALLBACK_IDENTIFIER = "System"


class WebUserActor(BaseModel):
    """A logged-in user of the admin web console."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["web_user"] = "web_user"
    id: str = Field(..., min_length=1)

    @property
    def display_name(self) -> str:
        return f"web:{self.id}"


class TelegramUserActor(BaseModel):
    """A Telegram account, usually a chat admin acting through the bot."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["telegram_user"] = "telegram_user"
    id: int

    @property
    def display_name(self) -> str:
        return f"telegram:{self.id}"


class SystemActor(BaseModel):
    """An automated component such as a detector or a scheduled job."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["system"] = "system"
    identifier: str = Field(default=SYSTEM_FALLBACK_IDENTIFIER, min_length=1)

    @property
    def display_name(self) -> str:
        return self.identifier


Actor = Annotated[
    Union[WebUserActor, TelegramUserActor, SystemActor],
    Field(discriminator="kind"),
]

actor_adapter: TypeAdapter[WebUserActor | TelegramUserActor | SystemActor] = TypeAdapter(Actor)


def actor_from_columns(
    web_user_id: str | None,
    telegram_user_id: int | None,
    system_identifier: str | None,
) -> WebUserActor | TelegramUserActor | SystemActor:
    """Rebuild an actor from its exclusive-arc storage columns.

    Raises:
        ValueError: If more than one column is populated.
    """
    populated = [
        value
        for value in (web_user_id, telegram_user_id, system_identifier)
        if value is not None
    ]
    if len(populated) > 1:
        raise ValueError("Actor columns must populate at most one identity")
    if web_user_id is not None:
        return WebUserActor(id=web_user_id)
    if telegram_user_id is not None:
        return TelegramUserActor(id=telegram_user_id)
    return SystemActor(identifier=system_identifier or SYSTEM_FALLBACK_IDENTIFIER)


def actor_to_columns(
    actor: WebUserActor | TelegramUserActor | SystemActor,
) -> dict[str, str | int | None]:
    """Return the exclusive-arc column values for ``actor``."""
    return {
        "web_user_id": actor.id if isinstance(actor, WebUserActor) else None,
        "telegram_user_id": actor.id if isinstance(actor, TelegramUserActor) else None,
        "system_identifier": actor.identifier if isinstance(actor, SystemActor) else None,
    }
