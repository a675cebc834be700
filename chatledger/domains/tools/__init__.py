"""
Tools Domain - Tool Invocation Gateway.

This domain handles:
- Parameter validation against tool schemas
- Dispatch to provider executors with a bounded timeout
- Wrapping executor failures
"""

from .contracts import ToolInvoker
from .gateway import ToolGateway
from .models import ToolResult
from .schema import check_parameters, validate_parameters

__all__ = [
    # Contracts
    "ToolInvoker",
    # Models
    "ToolResult",
    # Implementations
    "ToolGateway",
    "validate_parameters",
    "check_parameters",
]
