"""
Deployment framework.

This package contains:
- registry: provider type -> constructor table and self-registration
- populate: untyped config maps -> typed config models
- resolver: domain match patterns and paginated inventory
- idempotency: drops domains already serving the certificate
- executor: per-domain and bulk update strategies
- pipeline: the deploy state machine shared by domain deployers
"""
