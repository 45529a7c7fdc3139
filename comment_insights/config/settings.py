from dotenv import load_dotenv
from pydantic import BaseModel, Field
import os

load_dotenv()

def _to_bool(v: str | None, default: bool = False) -> bool:
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}

def _to_int(v: str | None, default: int) -> int:
    if v is None or not v.strip():
        return default
    return int(v.strip())

def _to_list(v: str | None, default: list[str]) -> list[str]:
    if v is None or not v.strip():
        return list(default)
    return [x.strip() for x in v.split(",") if x.strip()]

def _to_float(v: str | None, default: float) -> float:
    if v is None or not v.strip():
        return default
    return float(v.strip())


DEFAULT_FALLBACK_MODELS = ["gemini-1.5-flash-latest", "gemini-1.5-flash"]
EPHEMERAL_RESULTS_PATH = "/tmp/results.json"


class Settings(BaseModel):
    gemini_api_key: str = Field(default="")
    gemini_model: str = Field(default="gemini-2.5-flash")
    gemini_fallback_models: list[str] = Field(default_factory=lambda: list(DEFAULT_FALLBACK_MODELS))
    gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    # 0 => wait as long as the provider takes
    gemini_timeout_seconds: float = Field(default=0.0)

    source_url: str = Field(default="https://jsonplaceholder.typicode.com/comments?postId=1")
    source_name: str = Field(default="JSONPlaceholder Comments")
    notification_email: str = Field(default="notification-email@example.com")
    max_items: int = Field(default=3)
    request_timeout_ms: int = Field(default=8000)

    ephemeral_storage: bool = Field(default=False)
    data_dir: str = Field(default="data")
    results_path: str = Field(default="")

    log_level: str = Field(default="INFO")
    log_file: str = Field(default="logs/run.log")

    cors_allow_origin: str = Field(default="*")
    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=8000)

    @property
    def storage_path(self) -> str:
        if self.results_path:
            return self.results_path
        if self.ephemeral_storage:
            return EPHEMERAL_RESULTS_PATH
        return os.path.join(self.data_dir, "results.json")

    @property
    def request_timeout_seconds(self) -> float:
        return self.request_timeout_ms / 1000


_settings: Settings | None = None

def get_settings() -> Settings:
    global _settings
    if _settings is not None:
        return _settings

    _settings = Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL") or "gemini-2.5-flash",
        gemini_fallback_models=_to_list(os.getenv("GEMINI_FALLBACK_MODELS"), DEFAULT_FALLBACK_MODELS),
        gemini_base_url=os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"),
        gemini_timeout_seconds=_to_float(os.getenv("GEMINI_TIMEOUT_SECONDS"), 0.0),

        source_url=os.getenv("SOURCE_URL", "https://jsonplaceholder.typicode.com/comments?postId=1"),
        source_name=os.getenv("SOURCE_NAME", "JSONPlaceholder Comments"),
        notification_email=os.getenv("NOTIFICATION_EMAIL", "notification-email@example.com"),
        max_items=_to_int(os.getenv("MAX_ITEMS"), 3),
        request_timeout_ms=_to_int(os.getenv("REQUEST_TIMEOUT_MS"), 8000),

        ephemeral_storage=_to_bool(os.getenv("VERCEL")) or _to_bool(os.getenv("EPHEMERAL_STORAGE")),
        data_dir=os.getenv("DATA_DIR", "data"),
        results_path=os.getenv("RESULTS_PATH", ""),

        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE", "logs/run.log"),

        cors_allow_origin=os.getenv("CORS_ALLOW_ORIGIN", "*"),
        api_host=os.getenv("API_HOST", "127.0.0.1"),
        api_port=_to_int(os.getenv("API_PORT"), 8000),
    )
    return _settings
