"""Domain layer for HUNTKEEPER.

Contains the current document shapes (registry, organization, event) and the
pure helpers that maintain derived structures such as the date index. This
package is deliberately technology-agnostic.

Dependency rule: do not import from `huntkeeper.adapters` or `huntkeeper.entrypoints`.
"""
