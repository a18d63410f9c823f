"""
Test suite for the team board.

This package contains:
- unit/: entities, validation, view builders, the optimistic board, the
  REST adapter and token verification, without a database
- integration/: repositories against the local database and the HTTP API
"""
