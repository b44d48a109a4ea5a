"""Run the reload service standalone: ``python -m synreload``."""

from __future__ import annotations

import asyncio
import contextlib

from synreload.config import Settings
from synreload.logging_config import setup_logging
from synreload.service import SynonymReloadService


async def _serve(settings: Settings) -> None:
    async with SynonymReloadService(settings):
        await asyncio.Event().wait()


def main() -> None:
    settings = Settings()
    setup_logging(settings.logging)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_serve(settings))


if __name__ == "__main__":
    main()
