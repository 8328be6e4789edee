"""
MediChat data migration: one-shot transfer of the platform's MongoDB
documents into its relational PostgreSQL schema.

Run with ``medichat-migrate`` or ``python -m medichat_migration``.
"""

__version__ = '1.0.0'
