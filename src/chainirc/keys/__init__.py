"""Bundler API key loading."""

from .loader import KeyConfig, load_api_key

__all__ = ["KeyConfig", "load_api_key"]
