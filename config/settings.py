import os
from dataclasses import dataclass, field, replace
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

DEFAULT_JWT_SECRET = "default-secret-change-in-production"
DEFAULT_SERVER_URL = "http://localhost:3000"
SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_timeout(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    value = float(raw)
    return value if value > 0 else None


@dataclass(frozen=True)
class Config:
    # Authorization
    jwt_secret: str = field(
        default_factory=lambda: os.getenv("OHFIXIT_JWT_SECRET", DEFAULT_JWT_SECRET)
    )
    jwt_algorithm: str = field(
        default_factory=lambda: os.getenv("HELPER_JWT_ALGORITHM", "HS256").upper()
    )
    enforce_action_binding: bool = field(
        default_factory=lambda: _env_bool("HELPER_ENFORCE_ACTION_BINDING", "false")
    )

    # Remote authority
    server_url: str = field(
        default_factory=lambda: os.getenv("OHFIXIT_SERVER_URL", DEFAULT_SERVER_URL).rstrip("/")
    )
    report_timeout: float = field(
        default_factory=lambda: float(os.getenv("HELPER_REPORT_TIMEOUT", "10"))
    )

    # Control plane
    host: str = field(default_factory=lambda: os.getenv("HELPER_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("HELPER_PORT", "8765")))

    # Execution
    command_timeout: Optional[float] = field(
        default_factory=lambda: _env_timeout("HELPER_COMMAND_TIMEOUT")
    )
    enforce_platform: bool = field(
        default_factory=lambda: _env_bool("HELPER_ENFORCE_PLATFORM", "true")
    )

    log_level: str = field(default_factory=lambda: os.getenv("HELPER_LOG_LEVEL", "INFO").upper())

    version: str = "0.1.0"

    def __post_init__(self):
        if self.jwt_algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(
                f"Unsupported signing algorithm {self.jwt_algorithm!r}; "
                f"expected one of {', '.join(SUPPORTED_ALGORITHMS)}"
            )
        if not self.jwt_secret:
            raise ValueError("Signing secret must not be empty")

    @property
    def report_url(self) -> str:
        return f"{self.server_url}/api/automation/helper/report"

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET

    def with_overrides(self, **changes) -> "Config":
        return replace(self, **changes)


def load_config(**overrides) -> Config:
    """Build the process configuration from the environment (and .env)."""
    return Config(**overrides)
