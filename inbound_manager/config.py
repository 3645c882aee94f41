"""Environment-driven configuration.

Values are read from the process environment, optionally seeded from a
``.env`` file. Defaults reproduce the stock scoring of the domain checker.
"""

import os

import dotenv
import pydantic
from pydantic import Field


class ScoringConfig(pydantic.BaseModel):
    """Weights and cutoffs of the domain fitness score."""
    model_config = pydantic.ConfigDict(frozen=True)

    tls13_points: int = 40
    fast_latency_points: int = 30
    ok_latency_points: int = 20
    modern_stack_points: int = 20
    premium_points: int = 10
    fast_latency_ms: int = 300
    ok_latency_ms: int = 1000
    pass_score: int = 50
    good_score: int = 70
    excellent_score: int = 90


class CheckerConfig(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True)

    timeout: float = Field(12.0, gt=0)  # seconds, shared by both probes
    remote_timeout: float | None = Field(None, gt=0)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)

    @property
    def effective_remote_timeout(self) -> float:
        return self.remote_timeout if self.remote_timeout is not None else self.timeout


class PanelConfig(pydantic.BaseModel):
    base_url: str
    username: str | None = None
    password: str | None = None


_SCORING_ENV = {
    "tls13_points": "SCORE_TLS13",
    "fast_latency_points": "SCORE_FAST_LATENCY",
    "ok_latency_points": "SCORE_OK_LATENCY",
    "modern_stack_points": "SCORE_MODERN_STACK",
    "premium_points": "SCORE_PREMIUM",
    "fast_latency_ms": "LATENCY_FAST_MS",
    "ok_latency_ms": "LATENCY_OK_MS",
    "pass_score": "SCORE_PASS",
    "good_score": "SCORE_GOOD",
    "excellent_score": "SCORE_EXCELLENT",
}


def _from_env(mapping: dict[str, str]) -> dict[str, str]:
    return {field: os.environ[name] for field, name in mapping.items() if os.getenv(name)}


def load_checker_config(env_file: str | None = ".env") -> CheckerConfig:
    """Build the checker configuration from the environment.

    Args:
        env_file: Optional dotenv file loaded first; existing variables win.

    Raises:
        pydantic.ValidationError: If a variable holds a non-numeric value.
    """
    if env_file:
        dotenv.load_dotenv(env_file)
    scoring = ScoringConfig.model_validate(_from_env(_SCORING_ENV))
    return CheckerConfig.model_validate({
        **_from_env({"timeout": "CHECK_TIMEOUT", "remote_timeout": "CHECK_REMOTE_TIMEOUT"}),
        "scoring": scoring,
    })


def load_panel_config(env_file: str | None = ".env") -> PanelConfig:
    if env_file:
        dotenv.load_dotenv(env_file)
    base_url = os.getenv("PANEL_BASE_URL")
    if not base_url:
        raise ValueError("PANEL_BASE_URL is not set")
    return PanelConfig(
        base_url=base_url,
        username=os.getenv("PANEL_USERNAME"),
        password=os.getenv("PANEL_PASSWORD"),
    )
