"""
Nowbridge Modules - Black Box Architecture

Each module is a self-contained black box with:
- Clear interface (public API)
- Hidden implementation details
- Single responsibility

Dependency order (leaves first): auth -> client -> security -> executor.
The security module depends on nothing; the executor composes client and
security.
"""
