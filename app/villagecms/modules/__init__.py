"""
Feature modules live under this package.

Each module owns its models, services and admin routes, and reuses the
platform pieces (auth, rbac, tenancy, audit, DB session).
"""
