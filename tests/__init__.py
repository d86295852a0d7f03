"""
Tests Package.

This package contains test suites for the block-graph engine, including unit
tests for the graph model, connection manager, structural analysis, cache and
history, and integration tests for the workspace facade, template compiler
and CLI.
"""

# Tests Package
