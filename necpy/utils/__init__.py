from .safety import async_retry

__all__ = ["async_retry"]
