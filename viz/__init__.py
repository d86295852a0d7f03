"""
Visualization Package.

This package turns block graphs into plain render data (nodes with geometry and
edges with absolute port endpoints) that a canvas front end can draw directly.
Nothing here depends on a particular drawing toolkit.
"""

# Visualization Package
