"""Project-level configuration and path helpers."""

from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_LOG_PATH = LOGS_DIR / "rum_agent.log"
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"

# Environment variables with this prefix seed the agent configuration,
# e.g. RUM_SERVICE_NAME -> serviceName
ENV_PREFIX = "RUM_"


PathLike = Union[str, Path]


def resolve_log_path(env_value: PathLike | None = None) -> Path:
    """Resolve LOG_FILE to an absolute path."""
    if not env_value:
        return DEFAULT_LOG_PATH

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate
