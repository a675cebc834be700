"""
Provider Catalog - Built-in provider descriptors and tool tables.

Covers the web-UI-only assistants supported out of the box plus a generic
``custom`` provider driven by CSS selectors.
"""

from __future__ import annotations

from .models import (
    PollingBounds,
    ProviderDescriptor,
    ToolCategory,
    ToolDescriptor,
    ToolOperation,
)

__all__ = ["default_descriptors", "DEFAULT_PERMISSIONS"]

DEFAULT_PERMISSIONS = ["read_conversations", "monitor_sessions"]

_MAX_CONVERSATIONS = {
    "type": "number",
    "description": "Maximum conversations to extract",
    "default": 100,
}


def _chatgpt() -> ProviderDescriptor:
    tools = [
        ToolDescriptor(
            name="extract_chatgpt_conversations",
            description="Extract all conversations from ChatGPT web interface using DOM parsing",
            category=ToolCategory.CHAT_EXTRACTION,
            operation=ToolOperation.EXTRACT,
            provider_id="chatgpt",
            server_id="chatgpt_extractor",
            parameters={
                "type": "object",
                "properties": {
                    "session_token": {"type": "string", "description": "ChatGPT session token"},
                    "max_conversations": _MAX_CONVERSATIONS,
                    "include_archived": {
                        "type": "boolean",
                        "description": "Include archived conversations",
                        "default": False,
                    },
                    "date_range": {
                        "type": "object",
                        "properties": {
                            "start_date": {"type": "string", "format": "date"},
                            "end_date": {"type": "string", "format": "date"},
                        },
                    },
                },
                "required": ["session_token"],
            },
        ),
        ToolDescriptor(
            name="monitor_chatgpt_realtime",
            description="Monitor ChatGPT for new messages in real-time",
            category=ToolCategory.REAL_TIME_MONITORING,
            operation=ToolOperation.POLL,
            provider_id="chatgpt",
            server_id="chatgpt_extractor",
            parameters={
                "type": "object",
                "properties": {
                    "session_token": {"type": "string", "description": "ChatGPT session token"},
                    "webhook_url": {
                        "type": "string",
                        "description": "Webhook URL for new message notifications",
                    },
                    "polling_interval": {
                        "type": "number",
                        "description": "Polling interval in seconds",
                        "default": 30,
                    },
                },
                "required": ["session_token", "webhook_url"],
            },
        ),
        ToolDescriptor(
            name="export_chatgpt_conversation",
            description="Export specific ChatGPT conversation with full formatting",
            category=ToolCategory.DATA_EXPORT,
            operation=ToolOperation.EXPORT,
            provider_id="chatgpt",
            server_id="chatgpt_extractor",
            parameters={
                "type": "object",
                "properties": {
                    "conversation_id": {"type": "string", "description": "ChatGPT conversation ID"},
                    "format": {
                        "type": "string",
                        "enum": ["json", "markdown", "html"],
                        "default": "json",
                    },
                    "include_metadata": {"type": "boolean", "default": True},
                },
                "required": ["conversation_id"],
            },
        ),
    ]
    return ProviderDescriptor(
        id="chatgpt",
        display_name="ChatGPT",
        description="Extract chat history from chatgpt",
        tools=tools,
        credential_fields=["session_token"],
        expected_extraction_seconds=20.0,
    )


def _claude() -> ProviderDescriptor:
    tools = [
        ToolDescriptor(
            name="extract_claude_conversations",
            description="Extract conversations from Claude web interface",
            category=ToolCategory.CHAT_EXTRACTION,
            operation=ToolOperation.EXTRACT,
            provider_id="claude",
            server_id="claude_extractor",
            parameters={
                "type": "object",
                "properties": {
                    "session_cookie": {"type": "string", "description": "Claude session cookie"},
                    "organization_id": {"type": "string", "description": "Claude organization ID"},
                    "max_conversations": {"type": "number", "default": 100},
                    "include_artifacts": {
                        "type": "boolean",
                        "description": "Include Claude artifacts",
                        "default": True,
                    },
                },
                "required": ["session_cookie"],
            },
        ),
        ToolDescriptor(
            name="monitor_claude_projects",
            description="Monitor Claude projects for new conversations",
            category=ToolCategory.PROJECT_MONITORING,
            operation=ToolOperation.POLL,
            provider_id="claude",
            server_id="claude_extractor",
            parameters={
                "type": "object",
                "properties": {
                    "session_cookie": {"type": "string", "description": "Claude session cookie"},
                    "project_ids": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Project IDs to monitor",
                    },
                    "webhook_url": {"type": "string", "description": "Webhook for notifications"},
                    "polling_interval": {
                        "type": "number",
                        "description": "Polling interval in seconds",
                        "default": 60,
                    },
                },
                "required": ["session_cookie", "webhook_url"],
            },
        ),
    ]
    return ProviderDescriptor(
        id="claude",
        display_name="Claude",
        description="Extract chat history from claude",
        tools=tools,
        credential_fields=["session_cookie"],
        scope_fields=["organization_id"],
        polling=PollingBounds(min_seconds=10.0, max_seconds=3600.0, default_seconds=60.0),
        expected_extraction_seconds=15.0,
    )


def _gemini() -> ProviderDescriptor:
    tools = [
        ToolDescriptor(
            name="extract_gemini_conversations",
            description="Extract conversations from Google Gemini",
            category=ToolCategory.CHAT_EXTRACTION,
            operation=ToolOperation.EXTRACT,
            provider_id="gemini",
            server_id="gemini_extractor",
            parameters={
                "type": "object",
                "properties": {
                    "google_session": {"type": "string", "description": "Google session token"},
                    "workspace_id": {
                        "type": "string",
                        "description": "Google Workspace ID (if applicable)",
                    },
                    "max_conversations": {"type": "number", "default": 100},
                    "include_extensions": {
                        "type": "boolean",
                        "description": "Include Gemini extensions data",
                        "default": False,
                    },
                },
                "required": ["google_session"],
            },
        ),
    ]
    return ProviderDescriptor(
        id="gemini",
        display_name="Gemini",
        description="Extract chat history from gemini",
        tools=tools,
        credential_fields=["google_session"],
        scope_fields=["workspace_id"],
        expected_extraction_seconds=20.0,
    )


def _perplexity() -> ProviderDescriptor:
    tools = [
        ToolDescriptor(
            name="extract_perplexity_conversations",
            description="Extract conversations from Perplexity AI",
            category=ToolCategory.CHAT_EXTRACTION,
            operation=ToolOperation.EXTRACT,
            provider_id="perplexity",
            server_id="perplexity_extractor",
            parameters={
                "type": "object",
                "properties": {
                    "auth_token": {
                        "type": "string",
                        "description": "Perplexity authentication token",
                    },
                    "max_conversations": {"type": "number", "default": 100},
                    "include_sources": {
                        "type": "boolean",
                        "description": "Include source citations",
                        "default": True,
                    },
                },
                "required": ["auth_token"],
            },
        ),
    ]
    return ProviderDescriptor(
        id="perplexity",
        display_name="Perplexity",
        description="Extract chat history from perplexity",
        tools=tools,
        credential_fields=["auth_token"],
        expected_extraction_seconds=10.0,
    )


def _custom() -> ProviderDescriptor:
    tools = [
        ToolDescriptor(
            name="extract_custom_provider",
            description="Generic extraction tool for custom AI providers",
            category=ToolCategory.CHAT_EXTRACTION,
            operation=ToolOperation.EXTRACT,
            provider_id="custom",
            server_id="custom_extractor",
            provider_specific=False,
            parameters={
                "type": "object",
                "properties": {
                    "provider_url": {"type": "string", "description": "Provider base URL"},
                    "auth_method": {
                        "type": "string",
                        "enum": ["bearer", "cookie", "header", "query"],
                        "default": "bearer",
                    },
                    "auth_value": {"type": "string", "description": "Authentication value"},
                    "extraction_config": {
                        "type": "object",
                        "properties": {
                            "conversation_selector": {
                                "type": "string",
                                "description": "CSS selector for conversations",
                            },
                            "message_selector": {
                                "type": "string",
                                "description": "CSS selector for messages",
                            },
                            "title_selector": {
                                "type": "string",
                                "description": "CSS selector for conversation titles",
                            },
                        },
                    },
                },
                "required": ["provider_url", "auth_value", "extraction_config"],
            },
        ),
    ]
    return ProviderDescriptor(
        id="custom",
        display_name="Custom",
        description="Extract chat history from custom AI providers",
        tools=tools,
        credential_fields=["auth_value"],
        scope_fields=["provider_url"],
        auth_methods=["bearer", "cookie", "header", "query"],
        expected_extraction_seconds=30.0,
    )


def default_descriptors() -> list[ProviderDescriptor]:
    """Descriptors for every built-in provider."""
    return [_chatgpt(), _claude(), _gemini(), _perplexity(), _custom()]
