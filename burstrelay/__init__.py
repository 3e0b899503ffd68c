"""Asyncio TCP message relay: server, client, connection pool and demo sessions."""

__version__ = "0.1.0"