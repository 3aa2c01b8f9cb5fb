"""Stdio server: transport and request dispatcher."""

from instabridge.server.dispatcher import Server, ServerInfo
from instabridge.server.transport import StdioTransport, TransportError

__all__ = ["Server", "ServerInfo", "StdioTransport", "TransportError"]
