import json
import logging
import sys

from pydantic import ValidationError

from db import WorkoutRepository
from models import parse_workouts

logger = logging.getLogger(__name__)


def migrate(db_path: str = "workout.db", storage_key: str | None = None) -> bool:
    """Rewrite a legacy bare-array blob as ``{"workouts": [...]}``.

    Returns ``True`` when the stored value was rewritten.
    """
    repo = WorkoutRepository(db_path, storage_key)
    raw = repo.get_value(repo.storage_key)
    if not raw:
        return False
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.error("Stored workout data in %s is not valid JSON", db_path)
        return False
    if not isinstance(parsed, list):
        return False
    try:
        workouts = parse_workouts(parsed)
    except ValidationError:
        logger.exception("Legacy workout data in %s is malformed", db_path)
        return False
    repo.save_all(workouts)
    logger.info("Migrated %d legacy workouts in %s", len(parsed), db_path)
    return True


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    path = sys.argv[1] if len(sys.argv) > 1 else 'workout.db'
    migrate(path)
