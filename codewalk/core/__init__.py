"""Cursor, lexical context tracking and configuration."""
