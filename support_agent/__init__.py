"""Customer service agent with session-scoped auth and confirmed order operations."""

__version__ = "0.1.0"
