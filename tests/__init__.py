"""
Tests for Hardware Scene Agents

This package contains tests for:
- Scene sanitization, bounds, recentering and fallbacks
- Generation agents and the orchestrator
- Task graph planning and scheduling
- Output agents, the LLM client and the CLI
"""
