"""Spades room server: game engine, room coordination and WebSocket transport."""
