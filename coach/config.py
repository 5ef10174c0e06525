import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from coach.analyzer import DEFAULT_CONFIG, AnalysisConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

ENV_KEY_NAMES = {
    "groq": "GROQ_API_KEY",
    "openai": "OPENAI_API_KEY",
    "huggingface": "HUGGINGFACE_API_KEY",
}


@dataclass(frozen=True)
class Settings:
    env_keys: Mapping[str, str] = field(default_factory=dict)
    default_provider: str = "groq"
    data_dir: Path = Path("data")
    log_level: str = "INFO"
    request_timeout: Optional[float] = None  # seconds, None waits forever
    analysis_interval: float = 300.0
    min_transactions_for_ai: int = 2
    auto_analysis_min_transactions: int = 3
    analysis: AnalysisConfig = DEFAULT_CONFIG


def _float(env: Mapping[str, str], name: str, default: Optional[float]) -> Optional[float]:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r, not a number", name, raw)
        return default


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from the environment (after reading a local .env file)."""
    if env is None:
        load_dotenv()
        env = os.environ

    analysis = AnalysisConfig(
        recommendation_threshold=_float(
            env, "COACH_RECOMMENDATION_THRESHOLD", DEFAULT_CONFIG.recommendation_threshold),
        alert_threshold=_float(env, "COACH_ALERT_THRESHOLD", DEFAULT_CONFIG.alert_threshold),
    )

    return Settings(
        env_keys={provider: env.get(name, "") for provider, name in ENV_KEY_NAMES.items()},
        default_provider=env.get("DEFAULT_AI_PROVIDER") or "groq",
        data_dir=Path(env.get("COACH_DATA_DIR") or "data"),
        log_level=(env.get("COACH_LOG_LEVEL") or "INFO").upper(),
        request_timeout=_float(env, "COACH_REQUEST_TIMEOUT", None),
        analysis_interval=_float(env, "COACH_ANALYSIS_INTERVAL", 300.0),
        analysis=analysis,
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
