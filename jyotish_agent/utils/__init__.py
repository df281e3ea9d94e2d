"""
Utilities Module
================

Common utilities shared across the agent:
- logger: Context-aware console logging
- config: Environment-backed configuration
"""

from jyotish_agent.utils.logger import Logger, logger
from jyotish_agent.utils.config import get_config, Config

__all__ = ["Logger", "logger", "get_config", "Config"]
