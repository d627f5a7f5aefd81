"""Twitch integration: app credentials, Helix calls, webhook leases and notifications."""

from .api import HelixClient, stream_topic
from .credentials import ClientCredentials, CredentialManager
from .leases import Lease, LeaseManager, start_watching, watch_streams
from .notifications import (
    NotificationConsumer,
    NotificationPipeline,
    StreamNotification,
    StreamOffline,
    StreamOnline,
    decode_notification,
)
from .webhook_server import WebhookServer

__all__ = [
    "ClientCredentials",
    "CredentialManager",
    "HelixClient",
    "Lease",
    "LeaseManager",
    "NotificationConsumer",
    "NotificationPipeline",
    "StreamNotification",
    "StreamOffline",
    "StreamOnline",
    "WebhookServer",
    "decode_notification",
    "start_watching",
    "stream_topic",
    "watch_streams",
]
