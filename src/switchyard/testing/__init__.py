"""Test utilities for switchyard applications.

    from switchyard.testing import TestClient
"""

from switchyard.testing.client import TestClient, TestResponse

__all__ = ["TestClient", "TestResponse"]
