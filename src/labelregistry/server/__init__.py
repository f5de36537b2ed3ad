"""ASGI application for the label registry."""
