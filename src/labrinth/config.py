"""
Configuration Management

Reads client settings from environment variables, optionally loaded from a
``.env`` file.
"""

import os
import logging
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv

from . import __version__


DEFAULT_BASE_URL = 'https://api.modrinth.com/v2/'
DEFAULT_USER_AGENT = f'labrinth-client/{__version__}'


class Config:
    """Configuration management class."""

    def __init__(self, env_file: Optional[str] = None):
        """Initialize configuration from environment variables."""
        if env_file:
            load_dotenv(env_file)
        else:
            env_path = Path('.env')
            if env_path.exists():
                load_dotenv(env_path)

        # API
        self.base_url = os.getenv('LABRINTH_BASE_URL', DEFAULT_BASE_URL)
        self.auth_token = os.getenv('LABRINTH_TOKEN', '')
        self.user_agent = os.getenv('LABRINTH_USER_AGENT', DEFAULT_USER_AGENT)

        # Transport
        self.timeout = self._get_number('REQUEST_TIMEOUT', float, 300.0)
        self.max_retries = self._get_number('MAX_RETRIES', int, 3)
        self.retry_delay = self._get_number('RETRY_DELAY', float, 1.0)

        # Logging
        self.log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
        self.log_file = os.getenv('LOG_FILE', '')

        if self.max_retries < 1:
            logging.warning("MAX_RETRIES must be at least 1, using 1")
            self.max_retries = 1

    @staticmethod
    def _get_number(name: str, cast, default):
        try:
            return cast(os.getenv(name, str(default)))
        except ValueError:
            logging.warning(f"Invalid value for {name}, using default {default}")
            return default

    def setup_logging(self):
        """Configure logging based on settings."""
        handlers = [logging.StreamHandler()]
        if self.log_file:
            handlers.append(logging.FileHandler(self.log_file))

        logging.basicConfig(
            level=getattr(logging, self.log_level, logging.INFO),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=handlers
        )

    def get_client_config(self) -> dict:
        """Get keyword arguments for labrinth.client.Client."""
        return {
            'base_url': self.base_url,
            'auth_token': self.auth_token,
            'user_agent': self.user_agent,
            'timeout': self.timeout,
            'max_retries': self.max_retries,
            'retry_delay': self.retry_delay
        }
