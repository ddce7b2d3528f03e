"""Tests for the Brisk game server."""
