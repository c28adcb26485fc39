"""
Dispatch Transports

Channel-specific delivery for dispatch requests.

Available Transports:
- SlackDispatchTransport: Slack chat.postMessage
"""

from .slack import SlackDispatchTransport

__all__ = [
    "SlackDispatchTransport",
]
