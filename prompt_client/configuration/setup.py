import os

import dotenv
from loguru import logger

from prompt_client.utility import configure_logging

from .config import Config
from .inject import ConfigStore

ENV_PREFIX: str = "PROMPT_CLIENT"


def setup_config_store(filename: str | None = None, env_filename: str | None = None) -> Config:
    """Loads the configuration file into the default context (once) and configures logging."""

    env_filename = env_filename or os.getenv("ENV_FILE", ".env")
    dotenv.load_dotenv(dotenv_path=env_filename)

    config_file: str = filename or os.getenv("CONFIG_FILE", "config.yml")
    store: ConfigStore = ConfigStore.get_instance()

    if store.is_configured():
        return store.config()

    store.configure_context(source=config_file, env_filename=env_filename, env_prefix=ENV_PREFIX)

    cfg: Config = store.config()
    cfg.update({"runtime:config_file": config_file})

    configure_logging(cfg.get("logging") or {})

    logger.info(f"Configuration loaded from {config_file}")

    return cfg
