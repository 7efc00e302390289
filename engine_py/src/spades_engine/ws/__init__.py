"""
WebSocket server and event handling for the Spades room server.
"""

from .server import create_app

__all__ = ["create_app"]
