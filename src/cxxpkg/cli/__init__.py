"""CLI layer: operand classification, user output and the error boundary.

This package is the outermost layer of the application.  It may import
from ``core``, ``infra``, ``config`` and ``utils``, but no other layer
may import from ``cli``.
"""
