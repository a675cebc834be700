"""
Provider Models - Descriptors, tool schemas and credentials.
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, SecretStr, model_validator

REDACTED = "***"


class ToolCategory(str, Enum):
    """What a tool is for."""

    CHAT_EXTRACTION = "chat_extraction"
    REAL_TIME_MONITORING = "real_time_monitoring"
    PROJECT_MONITORING = "project_monitoring"
    DATA_EXPORT = "data_export"


class ToolOperation(str, Enum):
    """Executor capability a tool dispatches to."""

    EXTRACT = "extract"
    POLL = "poll"
    EXPORT = "export"


class ToolDescriptor(BaseModel):
    """A provider tool and its JSON-schema style parameter schema."""

    name: str
    description: str = ""
    category: ToolCategory
    operation: ToolOperation = ToolOperation.EXTRACT
    provider_id: str
    server_id: str = ""
    provider_specific: bool = True
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    model_config = {"frozen": True}

    @property
    def required_parameters(self) -> list[str]:
        """Top-level required parameter names."""
        return list(self.parameters.get("required", []))


class PollingBounds(BaseModel):
    """Allowed polling intervals for monitoring sessions, in seconds."""

    min_seconds: float = Field(default=5.0, gt=0)
    max_seconds: float = 3600.0
    default_seconds: float = 30.0

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_order(self) -> PollingBounds:
        """Ensure min <= default <= max."""
        if not self.min_seconds <= self.default_seconds <= self.max_seconds:
            raise ValueError("polling bounds must satisfy min <= default <= max")
        return self

    def contains(self, interval: float) -> bool:
        return self.min_seconds <= interval <= self.max_seconds


class ProviderDescriptor(BaseModel):
    """Static catalog entry for one provider."""

    id: str
    display_name: str
    description: str = ""
    tools: list[ToolDescriptor] = Field(default_factory=list)
    credential_fields: list[str] = Field(default_factory=list)
    scope_fields: list[str] = Field(default_factory=list)
    auth_methods: list[str] = Field(default_factory=lambda: ["session_token", "cookie"])
    extraction_methods: list[str] = Field(
        default_factory=lambda: ["web_scraping", "dom_parsing", "api_integration"]
    )
    polling: PollingBounds = Field(default_factory=PollingBounds)
    expected_extraction_seconds: float = Field(default=15.0, gt=0)

    model_config = {"frozen": True}

    @property
    def tools_count(self) -> int:
        return len(self.tools)

    @property
    def capabilities(self) -> list[str]:
        """Distinct tool categories, in catalog order."""
        seen: list[str] = []
        for tool in self.tools:
            if tool.category.value not in seen:
                seen.append(tool.category.value)
        return seen

    def tool(self, name: str) -> ToolDescriptor | None:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    def redact(self, parameters: dict[str, Any]) -> dict[str, Any]:
        """Copy of parameters with credential fields masked."""
        return {
            key: (REDACTED if key in self.credential_fields else value)
            for key, value in parameters.items()
        }


class Credential(BaseModel):
    """
    Provider credential held in process memory only.

    Secret values are ``SecretStr`` so they never show up in reprs,
    logs or serialized snapshots. The fingerprint is the only identifier
    that leaves this object.
    """

    provider_id: str
    secrets: dict[str, SecretStr] = Field(default_factory=dict)
    scope: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def fingerprint(self) -> str:
        """SHA-256 over provider id, secret values and scope."""
        parts = [self.provider_id]
        for key in sorted(self.secrets):
            parts.append(f"{key}={self.secrets[key].get_secret_value()}")
        for key in sorted(self.scope):
            parts.append(f"@{key}={self.scope[key]}")
        return hashlib.sha256("|".join(parts).encode()).hexdigest()

    def secret(self, name: str) -> str:
        """Plain secret value, or empty string when absent."""
        value = self.secrets.get(name)
        return value.get_secret_value() if value is not None else ""

    @classmethod
    def from_parameters(
        cls,
        descriptor: ProviderDescriptor,
        parameters: dict[str, Any],
    ) -> Credential:
        """Pick the provider's credential and scope fields out of tool parameters."""
        secrets = {
            name: SecretStr(str(parameters[name]))
            for name in descriptor.credential_fields
            if parameters.get(name) is not None
        }
        scope = {
            name: str(parameters[name])
            for name in descriptor.scope_fields
            if parameters.get(name) is not None
        }
        return cls(provider_id=descriptor.id, secrets=secrets, scope=scope)


class VerificationResult(BaseModel):
    """Answer from a provider-specific credential verifier."""

    valid: bool
    permissions: list[str] = Field(default_factory=list)
    message: str = ""
