import asyncio
import os

from gemdesk.bootstrap.bootstrapper import bootstrap_app
from gemdesk.services.ConsoleService.console_service_interface import (
    ConsoleServiceInterface,
)


async def main():
    app: ConsoleServiceInterface = await bootstrap_app(
        env=os.getenv("GEMDESK_ENV", "development")
    )
    await app.start()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
