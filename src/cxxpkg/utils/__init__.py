"""Shared helpers importable by every layer.

Rules
-----
* No business logic.
* No I/O.
* Importable by any layer.
"""
