"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional
import json

from dotenv import find_dotenv, load_dotenv

from autodiscover.discovery import Strategy, check_poll_interval, parse_strategy


@dataclass
class Config:
    """
    Autodiscover Node Configuration.

    Configuration priority (highest to lowest):
    1. Environment variables (AUTODISCOVER_*)
    2. Config file (config.json)
    3. Default values
    """
    # TCP listener
    host: str = '0.0.0.0'
    port: int = 0  # 0 = pick a free port

    # Address announced to peers (derived from the listener if not set)
    advertise_host: Optional[str] = None

    # Discovery
    method: str = 'broadcast'
    target: str = '255.255.255.255:2020'
    poll_interval: float = 0.5

    # Logging
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'Config':
        """
        Load configuration from environment variables.

        Raises:
            ValueError: If a numeric setting is invalid
        """
        # .env is looked up from the working directory, not from this file
        load_dotenv(find_dotenv(usecwd=True))

        config = cls()

        # TCP listener
        config.host = os.getenv('AUTODISCOVER_HOST', config.host)
        config.port = int(os.getenv('AUTODISCOVER_PORT', config.port))
        config.advertise_host = os.getenv('AUTODISCOVER_ADVERTISE_HOST') or None

        # Discovery
        config.method = os.getenv('AUTODISCOVER_METHOD', config.method).lower()
        config.target = os.getenv('AUTODISCOVER_TARGET', config.target)
        config.poll_interval = check_poll_interval(float(
            os.getenv('AUTODISCOVER_POLL_INTERVAL', config.poll_interval)
        ))

        # Logging
        config.log_level = os.getenv('AUTODISCOVER_LOG_LEVEL', config.log_level)

        return config

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """
        Load configuration from a JSON file.

        Raises:
            ValueError: If poll_interval is not positive
        """
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        config.host = data.get('host', config.host)
        config.port = data.get('port', config.port)
        config.advertise_host = data.get('advertise_host', config.advertise_host)

        config.method = (data.get('method') or config.method).lower()
        config.target = data.get('target', config.target)
        poll_interval = data.get('poll_interval')
        if poll_interval is not None:
            config.poll_interval = check_poll_interval(float(poll_interval))

        config.log_level = data.get('log_level', config.log_level)

        return config

    def strategy(self) -> Strategy:
        """Build the announcement method from `method` and `target`."""
        return parse_strategy(self.method, self.target)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'host': self.host,
            'port': self.port,
            'advertise_host': self.advertise_host,
            'method': self.method,
            'target': self.target,
            'poll_interval': self.poll_interval,
            'log_level': self.log_level,
        }

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.

    Environment variables override file settings.
    """
    config = Config()

    if config_path and config_path.exists():
        config = Config.from_file(config_path)

    env_config = Config.from_env()

    # Merge (env takes precedence for non-default values)
    defaults = Config()
    for key in ['host', 'port', 'advertise_host', 'method', 'target',
                'poll_interval', 'log_level']:
        env_val = getattr(env_config, key)
        if env_val != getattr(defaults, key):
            setattr(config, key, env_val)

    return config


# Example config file template
EXAMPLE_CONFIG = """
{
  "host": "0.0.0.0",
  "port": 0,
  "advertise_host": "192.168.1.20",
  "method": "multicast",
  "target": "[ff0e::1]:1337",
  "poll_interval": 0.5,
  "log_level": "INFO"
}
"""


if __name__ == "__main__":
    print("Example configuration file (config.json):")
    print(EXAMPLE_CONFIG)
