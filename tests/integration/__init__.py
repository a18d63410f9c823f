"""
Integration tests for the team board.

These run against a real SQLite database through the repositories, the
Flask test client and the CLI runner.
"""
