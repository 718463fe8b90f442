"""Runtime settings for a trustctl invocation."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_HOME: Path = Path.home() / ".trustctl"

STORE_ENV = "TRUSTCTL_STORE"
KEYS_ENV = "TRUSTCTL_KEYS"
OPERATOR_ENV = "TRUSTCTL_OPERATOR"


class Settings(BaseModel):
    """Where the stores live and which operator to act on.

    The command line fills these from options that fall back to the
    ``TRUSTCTL_STORE``, ``TRUSTCTL_KEYS`` and ``TRUSTCTL_OPERATOR``
    environment variables.
    """

    model_config = {"frozen": True}

    store_root: Path = Field(default_factory=lambda: DEFAULT_HOME / "store")
    keys_root: Path = Field(default_factory=lambda: DEFAULT_HOME / "keys")
    operator: Optional[str] = None
    http_timeout: float = Field(default=5.0, gt=0)
    max_workers: int = Field(default=8, ge=1)


__all__ = ["DEFAULT_HOME", "KEYS_ENV", "OPERATOR_ENV", "STORE_ENV", "Settings"]
