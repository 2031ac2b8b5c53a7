"""External collaborators: the bundler and the directory."""

from .bundler import BundlerGateway, JsonRpcBundlerClient
from .directory import DirectoryGateway, HttpDirectoryClient
from .memory import InMemoryDirectory, SimulatedBundler

__all__ = [
    "BundlerGateway",
    "DirectoryGateway",
    "HttpDirectoryClient",
    "InMemoryDirectory",
    "JsonRpcBundlerClient",
    "SimulatedBundler",
]
