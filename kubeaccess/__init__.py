"""Access matrices for kubernetes resources and RBAC subjects."""

__version__ = "0.5.0"
