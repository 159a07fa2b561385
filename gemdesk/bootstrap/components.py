import os
from pathlib import Path
from threading import Lock
from typing import Any, TypeVar, cast

from dotenv import load_dotenv
from google import genai
from openinference.instrumentation.google_genai import GoogleGenAIInstrumentor

from gemdesk.components.configuration.configuration import Configuration
from gemdesk.components.configuration.configuration_interface import (
    ConfigurationInterface,
)
from gemdesk.components.database.db_interface import DBInterface
from gemdesk.components.database.sqlite_db import SqliteDB
from gemdesk.components.logger.logger import Logger
from gemdesk.components.logger.logger_interface import LoggerInterface


load_dotenv()


def _is_test_environment() -> bool:
    """
    Check if we are running in a test environment.

    Returns:
        True if running under pytest or if TESTING env var is set, False otherwise.
    """
    import sys

    if any("pytest" in arg for arg in sys.argv):
        return True

    if os.getenv("TESTING", "").lower() in ("true", "1", "yes"):
        return True

    return False


def _is_tracing_enabled() -> bool:
    return os.getenv("GEMDESK_TRACING", "").lower() in ("true", "1", "yes")


def _validate_otel_env_vars() -> None:
    """
    Validate OpenTelemetry/Langfuse environment variables for instrumentation.

    Two configuration paths are supported:

    1.  **Langfuse Native Integration:** If `LANGFUSE_PUBLIC_KEY`, `LANGFUSE_SECRET_KEY`,
        and `LANGFUSE_BASE_URL` are all set, validation is skipped.

    2.  **Manual OpenTelemetry Configuration:** Otherwise `OTEL_EXPORTER_OTLP_ENDPOINT`
        and `OTEL_EXPORTER_OTLP_HEADERS` must both be set.

    Raises:
        RuntimeError: If the manual OpenTelemetry variables are missing or empty
                      when the Langfuse variables are not provided.
    """

    otel_endpoint: str = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "").strip()
    otel_headers: str = os.getenv("OTEL_EXPORTER_OTLP_HEADERS", "").strip()

    langfuse_public_key: str = os.getenv("LANGFUSE_PUBLIC_KEY", "").strip()
    langfuse_secret_key: str = os.getenv("LANGFUSE_SECRET_KEY", "").strip()
    langfuse_base_url: str = os.getenv("LANGFUSE_BASE_URL", "").strip()

    if langfuse_public_key and langfuse_secret_key and langfuse_base_url:
        return

    if not otel_endpoint:
        raise RuntimeError(
            "OTEL_EXPORTER_OTLP_ENDPOINT environment variable is not set or is empty. "
            "Set it to a valid OTLP endpoint URL or disable GEMDESK_TRACING."
        )

    if not otel_headers:
        raise RuntimeError(
            "OTEL_EXPORTER_OTLP_HEADERS environment variable is not set or is empty. "
            "Set it directly (e.g., 'Authorization=Basic <base64_credentials>') "
            "or provide LANGFUSE_PUBLIC_KEY, LANGFUSE_SECRET_KEY and LANGFUSE_BASE_URL."
        )


if not _is_test_environment() and _is_tracing_enabled():
    _validate_otel_env_vars()

    GoogleGenAIInstrumentor().instrument()

T = TypeVar("T")


class ComponentsMeta(type):
    _instances: dict[tuple[type, str], "Components"] = {}
    _lock: Lock = Lock()

    def __call__(cls, *args, **kwargs):
        env = args[0] if args else kwargs.get("env")
        if env is None:
            raise ValueError("Environment must be provided")

        key = (cls, str(env))
        with cls._lock:
            if key not in cls._instances:
                cls._instances[key] = super().__call__(*args, **kwargs)
        return cls._instances[key]


class Components(metaclass=ComponentsMeta):
    def __init__(self, env: str, config_path: str) -> None:
        self.__env: str = env
        root_dir: str = str(Path(__file__).resolve().parents[2])
        self.__config_path: str = os.path.join(root_dir, config_path)
        self.__components: dict[type[Any], Any] = self.__bootstrap_components()

    def __bootstrap_components(self) -> dict[type[Any], Any]:
        if self.__env in {"development", "staging", "production"}:
            return self.__get_components()

        raise ValueError(f"Invalid environment: {self.__env}")

    def __get_components(self) -> dict[type[Any], Any]:
        configuration: ConfigurationInterface = Configuration(
            self.__env, self.__config_path
        )

        logger: LoggerInterface = Logger(
            log_format=configuration.get_configuration("LOG_FORMAT", str),
            log_level=configuration.get_configuration("LOG_LEVEL", str),
        )

        genai_client: genai.Client = self.__create_genai_client(configuration)

        sqlite_db: DBInterface = SqliteDB(
            db_path=configuration.get_configuration("SQLITE_DB_PATH", str)
        )
        sqlite_db.connect()

        logger.get_logger("Components").info(
            "Components ready for %s environment", self.__env
        )

        return {
            ConfigurationInterface: configuration,
            LoggerInterface: logger,
            genai.Client: genai_client,
            DBInterface: sqlite_db,
        }

    @staticmethod
    def __create_genai_client(configuration: ConfigurationInterface) -> genai.Client:
        api_key = configuration.get_configuration("GEMINI_API_KEY", str, default="")
        if api_key:
            # The ADK agent builds its own model client from the environment.
            os.environ.setdefault("GOOGLE_API_KEY", api_key)
            return genai.Client(api_key=api_key)

        project_id = configuration.get_configuration("VERTEX_PROJECT_ID", str, default="")
        if not project_id:
            raise RuntimeError(
                "Set GEMINI_API_KEY, or VERTEX_PROJECT_ID for the Vertex AI backend."
            )
        location = configuration.get_configuration(
            "VERTEX_LOCATION", str, default="us-central1"
        )
        os.environ.setdefault("GOOGLE_GENAI_USE_VERTEXAI", "true")
        os.environ.setdefault("GOOGLE_CLOUD_PROJECT", project_id)
        os.environ.setdefault("GOOGLE_CLOUD_LOCATION", location)
        return genai.Client(vertexai=True, project=project_id, location=location)

    def get_component(self, component_name: type[T]) -> T:
        if component_name not in self.__components:
            raise ValueError(f"Component {component_name} not found")

        return cast(T, self.__components[component_name])

    def get_config_path(self) -> str:
        return self.__config_path
