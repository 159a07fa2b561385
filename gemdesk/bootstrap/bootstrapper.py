from gemdesk.dependencies.components import get_components
from gemdesk.dependencies.services import get_console_service
from gemdesk.services.ConsoleService.console_service_interface import (
    ConsoleServiceInterface,
)


async def bootstrap_app(
    env: str = "development",
    config_path: str = "configuration",
) -> ConsoleServiceInterface:
    components = get_components(env=env, config_path=config_path)
    return get_console_service(components)
