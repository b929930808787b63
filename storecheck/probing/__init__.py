"""
HTTP probing pipeline: transport, classifier and scheduler.
"""

from storecheck.probing.classifier import StoreClassifier
from storecheck.probing.context import RunContext
from storecheck.probing.html_inspection import ElementDescriptor, HTMLInspector
from storecheck.probing.scheduler import AdmissionGate, BoundedScheduler
from storecheck.probing.transport import FetchOptions, HttpTransport, TransportError

__all__ = [
    "AdmissionGate",
    "BoundedScheduler",
    "ElementDescriptor",
    "FetchOptions",
    "HTMLInspector",
    "HttpTransport",
    "RunContext",
    "StoreClassifier",
    "TransportError",
]
