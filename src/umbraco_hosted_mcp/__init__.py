"""Hosted MCP server for Umbraco with an OAuth bridge to the backoffice."""

__version__ = "0.1.0"
