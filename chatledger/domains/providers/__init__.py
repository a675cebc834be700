"""
Providers Domain - Provider catalog, tool schemas and credentials.

This domain handles:
- Provider and tool descriptors
- Credential material and fingerprints
- Executor / verifier capability contracts
- The read-only provider registry
"""

from .catalog import DEFAULT_PERMISSIONS, default_descriptors
from .contracts import CredentialVerifier, ProviderExecutor
from .models import (
    Credential,
    PollingBounds,
    ProviderDescriptor,
    ToolCategory,
    ToolDescriptor,
    ToolOperation,
    VerificationResult,
)
from .registry import ProviderBinding, ProviderRegistry

__all__ = [
    # Contracts
    "ProviderExecutor",
    "CredentialVerifier",
    # Models
    "Credential",
    "PollingBounds",
    "ProviderDescriptor",
    "ToolCategory",
    "ToolDescriptor",
    "ToolOperation",
    "VerificationResult",
    # Implementations
    "ProviderBinding",
    "ProviderRegistry",
    "default_descriptors",
    "DEFAULT_PERMISSIONS",
]
