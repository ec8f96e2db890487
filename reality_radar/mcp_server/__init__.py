"""MCP server exposing property timelines and market signals."""
