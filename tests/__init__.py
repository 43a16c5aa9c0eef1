"""
Test suite for VMware vSphere Collector.

Unit tests for namespace parsing, metric definitions, query batching and
response handling, plus collection cycle and MCP server tests against an
in-memory vSphere API.
"""
