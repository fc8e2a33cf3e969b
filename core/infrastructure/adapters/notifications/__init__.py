"""Notification dispatchers.

Import-light on purpose: the Slack and Telegram dispatchers pull in
aiohttp, so import concrete dispatchers from their own modules.
"""

__all__ = []
