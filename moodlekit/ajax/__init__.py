"""Batched AJAX calls against lib/ajax/service.php."""

from moodlekit.ajax.dispatcher import AjaxDispatcher, settle_batch
from moodlekit.ajax.protocol import RemoteCall, WireRequest, WireResponse, RemoteException
from moodlekit.ajax.transport import HttpBatchTransport

__all__ = [
    "AjaxDispatcher",
    "HttpBatchTransport",
    "RemoteCall",
    "RemoteException",
    "WireRequest",
    "WireResponse",
    "settle_batch",
]
