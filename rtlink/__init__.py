"""Manage Linux network links and addresses over rtnetlink, with asyncio."""

__version__ = "0.1.0"

__all__ = [
    "addr",
    "bond",
    "cli",
    "constants",
    "errors",
    "handle",
    "link",
    "link_add",
    "messages",
]