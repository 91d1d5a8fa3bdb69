from __future__ import annotations

import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lessonhub.config import get_settings
from lessonhub.database import DatabaseSessionManager
from lessonhub.errors import UpstreamFailure


async def _wait(attempts: int, delay_seconds: float) -> bool:
    manager = DatabaseSessionManager(get_settings())
    try:
        for attempt in range(1, attempts + 1):
            try:
                await manager.ping()
                return True
            except UpstreamFailure:
                print(f"Waiting for database ({attempt}/{attempts})...")
                await asyncio.sleep(delay_seconds)
        return False
    finally:
        await manager.dispose()


def main() -> None:
    if not asyncio.run(_wait(attempts=60, delay_seconds=2)):
        raise SystemExit("Database did not become ready in time.")
    print("Database is ready.")


if __name__ == "__main__":
    main()
