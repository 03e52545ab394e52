"""Treasury back-office: multi-tenant RBAC and transactional outbox."""

__version__ = "0.1.0"
