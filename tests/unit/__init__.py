"""Unit tests that need neither a database nor the HTTP layer."""
