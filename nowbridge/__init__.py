"""
Nowbridge - ServiceNow Script Execution Bridge

Authenticates against a single ServiceNow instance and runs validated
server-side scripts on it.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- auth: Session state and credential validation
- client: HTTP transport, error taxonomy, timeout enforcement
- security: Static screening of script text
- executor: Execution pipeline and result shaping
- api: HTTP request/response models
"""

__version__ = "1.0.0"
