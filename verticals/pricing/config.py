"""Pricing vertical configuration, read once from the environment."""

from patterns.domain_config import PriceUpdatesConfig

# Default configuration instance
config = PriceUpdatesConfig.from_env()
