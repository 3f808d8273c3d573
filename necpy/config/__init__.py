from .loader import DEFAULTS, RPC_URL_ENV, load_provider_config

__all__ = ["load_provider_config", "DEFAULTS", "RPC_URL_ENV"]
