"""Check cached moderation state against a replay of the action log."""
from __future__ import annotations

import argparse
import logging
import sys

from sqlalchemy.orm import Session

from groups_admin.core.settings import settings
from groups_admin.db.session import SessionLocal
from groups_admin.services.moderation import ModerationService

logger = logging.getLogger(__name__)


def audit(session: Session, user_ids: list[int] | None = None, *, repair: bool = False) -> list[int]:
    """Return the ids of users whose cached state had drifted.

    With ``repair`` the drifted users are rewritten from their replayed log.
    """
    service = ModerationService(session)
    if user_ids is None:
        user_ids = service.users.list_ids()

    if repair:
        return [user_id for user_id in user_ids if service.repair_state(user_id)]
    return [user_id for user_id in user_ids if not service.verify_state(user_id)]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--user-id",
        type=int,
        action="append",
        dest="user_ids",
        help="Audit only this user (repeatable). Defaults to every user.",
    )
    parser.add_argument(
        "--repair",
        action="store_true",
        help="Rewrite drifted state from the action log.",
    )
    args = parser.parse_args(argv)

    with SessionLocal() as session:
        drifted = audit(session, args.user_ids, repair=args.repair)

    if not drifted:
        logger.info("No moderation state drift found")
        return 0
    verb = "Repaired" if args.repair else "Found drift for"
    logger.warning("%s %d user(s): %s", verb, len(drifted), ", ".join(map(str, drifted)))
    return 0 if args.repair else 1


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level.upper())
    sys.exit(main())
