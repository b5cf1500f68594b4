"""Service client module."""

from cyborgdb.client.client import Client
from cyborgdb.client.index import EncryptedIndex
from cyborgdb.client.models import ListIDsResult, TrainParams
from cyborgdb.client.transport import ServiceTransport

__all__ = [
    "Client",
    "EncryptedIndex",
    "ListIDsResult",
    "ServiceTransport",
    "TrainParams",
]
