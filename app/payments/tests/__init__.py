"""
Tests for payments app.

This package contains test modules for:
- test_models.py: Payment and Payout model tests
- test_tasks.py: Payout release retry task
- test_views.py: Admin payout release endpoint

Usage:
    pytest payments/tests/
    pytest payments/tests/test_models.py
"""
