"""Stub MCP servers for the test suite."""
