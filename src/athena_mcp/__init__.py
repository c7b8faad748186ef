"""athenahealth practice-management adapter.

This package exposes the athenahealth REST API (patients, scheduling,
prescriptions, encounters) through two front ends that share one core:
an MCP server for AI-agent clients (mcp_server.py) and a plain HTTP
webhook bridge for workflow-automation tools (app.py).
"""
