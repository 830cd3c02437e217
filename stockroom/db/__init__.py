"""Database access: tables, sessions and store error translation."""
