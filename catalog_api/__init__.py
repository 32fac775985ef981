"""Multi-tenant product catalog API."""
