import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lessonhub import models  # noqa: F401  registers tables on Base.metadata
from lessonhub.config import get_settings
from lessonhub.database import DatabaseSessionManager


async def _create_schema() -> None:
    manager = DatabaseSessionManager(get_settings())
    try:
        await manager.create_schema()
    finally:
        await manager.dispose()


def main() -> None:
    asyncio.run(_create_schema())
    print("Database initialized with the LessonHub schema.")


if __name__ == "__main__":
    main()
