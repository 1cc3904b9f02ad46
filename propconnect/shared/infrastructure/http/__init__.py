"""HTTP adapters."""

from .api_client import ApiClient, unwrap_list

__all__ = ["ApiClient", "unwrap_list"]
