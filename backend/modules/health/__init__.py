"""
Health monitoring module.

Provides the public and light health checks used by load balancers and an
admin-only detailed view with host metrics.
"""
