"""Lending Library - loans and reservation queues served over MCP."""

__version__ = "0.1.0"
