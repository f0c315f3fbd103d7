"""
Observability for mediascope.

Structured logging only: JSON lines in production, colored text
everywhere else. Both go to stderr so stdout stays free for the
MCP stdio transport.
"""
