"""
MCP tool modules for mediascope.

Every tool is an async function decorated with @browser_tool (see
base.py) that takes simple JSON-friendly parameters, resolves the shared
SessionManager, and returns a JSON string carrying `success`.

Soft tools (discovery and extraction) report a MediascopeError as
{"success": false, "error": ...}; the rest raise it to the MCP layer.
"""
