"""Interfaces (application boundary) for HUNTKEEPER.

Defines framework-free contracts: the repository ports callers use, the
low-level document store port the adapters build on, and the error taxonomy
shared by all of them.

Dependency rule: may import from `huntkeeper.domain` and `huntkeeper.schemas`
only. It is imported by `huntkeeper.adapters`, `huntkeeper.bootstrap` and the
entrypoints.
"""
