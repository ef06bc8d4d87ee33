"""
Test suite for the e-Gram Panchayat portal.

This package contains:
- unit/: Transport layer, store, auth and helper tests without a request
- integration/: Page flows through the Flask test client
"""
