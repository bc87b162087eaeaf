from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PORT = 5201
DEFAULT_THREADS = 1
DEFAULT_PERIOD_SECONDS = 5.0
MAX_TIMEOUT_SECONDS = 30.0


class ProbeConfig(BaseModel):
    """
    Validated parameters of a single probe request.
    """

    model_config = ConfigDict(frozen=True)

    target: str = Field(min_length=1)
    port: int = DEFAULT_PORT
    thread: int = Field(default=DEFAULT_THREADS, ge=1)
    period: float = DEFAULT_PERIOD_SECONDS
    timeout: float = Field(default=MAX_TIMEOUT_SECONDS, le=MAX_TIMEOUT_SECONDS)
