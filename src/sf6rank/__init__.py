"""Street Fighter 6 Buckler profile lookups (rank, win rate, battle log, search)."""

from .workflows import ProfileConfig, ProfileService, load_config_from_env

__version__ = "0.1.0"

__all__ = ["ProfileConfig", "ProfileService", "load_config_from_env", "__version__"]
