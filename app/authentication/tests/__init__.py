"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User manager and model tests
- test_services.py: RegistrationService, MFAService, PolicyService tests
- test_views.py: API endpoint tests

Usage:
    pytest authentication/tests/
"""
