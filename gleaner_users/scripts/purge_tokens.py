"""
CLI entrypoint for housekeeping of auth tables. Run from cron, e.g.:

  python -m gleaner_users.scripts.purge_tokens

Deletes revoked tokens that have expired and failed login attempts older than
LOGIN_ATTEMPT_WINDOW_MINUTES.
"""

import logging
import sys

from gleaner_users.core.config import get_settings
from gleaner_users.core.database import SessionLocal
from gleaner_users.services.accounts import purge_expired

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    db = SessionLocal()
    try:
        tokens, attempts = purge_expired(db, settings)
        logger.info("Purge completed: revoked_tokens=%s login_attempts=%s", tokens, attempts)
        return 0
    except Exception as e:
        logger.exception("Purge job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
