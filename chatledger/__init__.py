"""
ChatLedger - Provider extraction and monitoring orchestrator for AI chat transcripts.

Example:
    >>> from chatledger.domains.orchestration import build_orchestrator
    >>> orchestrator = build_orchestrator()
    >>> job_id = await orchestrator.submit_extraction_job(
    ...     "claude", "extract_claude_conversations", {"session_cookie": "abc"}
    ... )
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
