"""Moderation dashboard statistics."""
