"""
Test support utilities for request-queue tests.

Scripted transports and runners that don't fit as pytest fixtures but
are shared across test modules.
"""
