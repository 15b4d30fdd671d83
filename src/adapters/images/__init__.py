"""Image hosting adapters."""

from .hosting import HttpImageHost, public_id_from_url

__all__ = ["HttpImageHost", "public_id_from_url"]
