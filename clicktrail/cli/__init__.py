"""Command modules for the clicktrail CLI."""
