"""Mark expired pending consent requests as no_answer.

Meant for cron, e.g. every minute::

    * * * * * cd /srv/portaria && consent-sweep
"""

from __future__ import annotations

import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from portaria.config import get_settings
from portaria.consent import ConsentLifecycle
from portaria.db import SessionLocal

logger = logging.getLogger("portaria.sweep")


def main() -> int:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Checking for expired consents...")
    try:
        with SessionLocal() as db:
            result = ConsentLifecycle(db).sweep_expired()
    except SQLAlchemyError:
        logger.exception("Error checking expired consents")
        return 1

    if not result.marked_count:
        logger.info("No expired consents found.")
    logger.info("Done: marked=%d sids=%s", result.marked_count, result.conversation_sids)
    return 0


if __name__ == "__main__":
    sys.exit(main())
