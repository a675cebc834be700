"""
Fixture payloads in the raw shape provider executors return.
"""

from __future__ import annotations

from typing import Any

FIXTURE_PAYLOADS: dict[str, dict[str, Any]] = {
    "chatgpt": {
        "conversations": [
            {
                "id": "chatgpt_conv_1",
                "title": "Python Data Analysis Help",
                "messages": [
                    {
                        "role": "user",
                        "content": "Can you help me analyze a CSV file with pandas?",
                        "timestamp": "2024-01-15T10:00:00Z",
                    },
                    {
                        "role": "assistant",
                        "content": (
                            "I'd be happy to help you analyze a CSV file with pandas! "
                            "Here's a comprehensive approach..."
                        ),
                        "timestamp": "2024-01-15T10:00:15Z",
                    },
                ],
                "created_at": "2024-01-15T10:00:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
            },
            {
                "id": "chatgpt_conv_2",
                "title": "React Component Design",
                "messages": [
                    {
                        "role": "user",
                        "content": "How do I create a reusable modal component in React?",
                        "timestamp": "2024-01-15T14:00:00Z",
                    },
                    {
                        "role": "assistant",
                        "content": (
                            "Creating a reusable modal component in React involves "
                            "several key considerations..."
                        ),
                        "timestamp": "2024-01-15T14:00:20Z",
                    },
                ],
                "created_at": "2024-01-15T14:00:00Z",
                "updated_at": "2024-01-15T14:45:00Z",
            },
        ],
        "metadata": {
            "provider": "chatgpt",
            "extraction_method": "web_scraping",
            "total_conversations": 2,
            "extraction_timestamp": "2024-01-15T16:00:00Z",
        },
    },
    "claude": {
        "conversations": [
            {
                "id": "claude_conv_1",
                "title": "System Architecture Discussion",
                "messages": [
                    {
                        "role": "user",
                        "content": (
                            "I need help designing a microservices architecture "
                            "for an e-commerce platform."
                        ),
                        "timestamp": "2024-01-15T11:00:00Z",
                    },
                    {
                        "role": "assistant",
                        "content": (
                            "I'll help you design a robust microservices architecture "
                            "for your e-commerce platform..."
                        ),
                        "timestamp": "2024-01-15T11:00:25Z",
                    },
                ],
                "created_at": "2024-01-15T11:00:00Z",
                "updated_at": "2024-01-15T12:00:00Z",
            },
        ],
        "metadata": {
            "provider": "claude",
            "extraction_method": "api_scraping",
            "total_conversations": 1,
            "extraction_timestamp": "2024-01-15T16:00:00Z",
        },
    },
}
