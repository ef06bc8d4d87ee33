"""
Page-level tests for the portal.

Tests use the Flask test client against a fake backend and demonstrate:
- Access control and session expiry handling
- Form validation and flash-message feedback
- Degraded rendering when the backend is unreachable
"""
