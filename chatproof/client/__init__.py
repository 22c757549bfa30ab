"""
Transport for the confidential inference API.
"""

from .api import ConfidentialChatClient

__all__ = ["ConfidentialChatClient"]
