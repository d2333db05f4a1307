"""Environment loading helpers."""

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import MissingConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILES = (".env", ".env.local")


def load_environment(env_file: Optional[str] = None) -> None:
    """Populate os.environ from dotenv files without overriding set variables."""
    if env_file:
        path = Path(env_file)
        if not path.exists():
            raise MissingConfigurationError(f"Env file not found: {env_file}")
        load_dotenv(path, override=False)
        logger.debug(f"Loaded environment from {path}")
        return

    for candidate in DEFAULT_ENV_FILES:
        path = Path(candidate)
        if path.exists():
            load_dotenv(path, override=False)
            logger.debug(f"Loaded environment from {path}")
