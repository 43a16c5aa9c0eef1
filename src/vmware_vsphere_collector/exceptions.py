"""
VMware vSphere Collector Exceptions

Custom exception classes for vSphere metric collection.

Author: uldyssian-sh
License: MIT
"""


class VSphereCollectorError(Exception):
    """Base exception for VMware vSphere Collector"""
    pass


class ConfigurationError(VSphereCollectorError):
    """Raised when connection configuration is missing or invalid"""
    pass


class ValidationError(VSphereCollectorError):
    """Raised when input validation fails"""
    pass


class NoCountersError(ValidationError):
    """Raised when no requested namespace maps to a known metric"""
    pass


class VCenterConnectionError(VSphereCollectorError):
    """Raised when a call to vCenter fails"""
    pass


class VCenterAuthenticationError(VCenterConnectionError):
    """Raised when vCenter authentication fails"""
    pass


class ResourceNotFoundError(VSphereCollectorError):
    """Raised when a counter, entity or cluster is not found"""
    pass


class MalformedResponseError(VSphereCollectorError):
    """Raised when vCenter returns an unexpected performance result shape"""
    pass
