"""Event-driven bot framework: collectors, strategies and executors joined by an asyncio engine."""

__version__ = "0.2.0"