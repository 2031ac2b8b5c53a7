"""Typed domain models used at I/O boundaries."""

from .directory import ChannelRef, DirectoryMessage, StoredSession, UserProfile
from .profile import AppProfile

__all__ = [
    "AppProfile",
    "ChannelRef",
    "DirectoryMessage",
    "StoredSession",
    "UserProfile",
]
