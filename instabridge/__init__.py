"""instabridge - Instagram post fetching worker speaking JSON-RPC over stdio."""

__version__ = "0.2.0"
__logo__ = "📸"
