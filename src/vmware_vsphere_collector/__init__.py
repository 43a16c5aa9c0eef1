"""
VMware vSphere Collector

Near-real-time performance metric collection for vSphere clusters. Requested
metric namespaces are translated into a single batched performance query per
collection cycle, and the results are mapped back onto the namespaces with
unit conversions applied.

Author: uldyssian-sh
License: MIT
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "uldyssian-sh"
__license__ = "MIT"
__description__ = "VMware vSphere Collector - batched vSphere performance metric collection"

from .exceptions import (
    VSphereCollectorError,
    ConfigurationError,
    ValidationError,
    NoCountersError,
    VCenterConnectionError,
    VCenterAuthenticationError,
    ResourceNotFoundError,
    MalformedResponseError
)
from .config import CollectorConfig
from .namespace import MetricRequest
from .projector import DerivedMetric
from .collector import VSphereCollector


def get_version():
    """Get the current version of VMware vSphere Collector."""
    return __version__


def get_info():
    """Get information about VMware vSphere Collector."""
    return {
        "name": "VMware vSphere Collector",
        "version": __version__,
        "author": __author__,
        "license": __license__,
        "description": __description__
    }


__all__ = [
    # Metadata
    "__version__",
    "__author__",
    "__license__",
    "__description__",

    # Core functions
    "get_version",
    "get_info",

    # Collection
    "VSphereCollector",
    "CollectorConfig",
    "MetricRequest",
    "DerivedMetric",

    # Exceptions
    "VSphereCollectorError",
    "ConfigurationError",
    "ValidationError",
    "NoCountersError",
    "VCenterConnectionError",
    "VCenterAuthenticationError",
    "ResourceNotFoundError",
    "MalformedResponseError"
]
