"""BrokerDoc API: chat-driven generation of filled real-estate forms."""

__version__ = "0.1.0"
