"""
Tests for Five Realms AI
========================

Run all tests:
    pytest tests/

Skip the slow end-to-end runs:
    pytest tests/ -m "not slow"
"""
