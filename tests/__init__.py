"""Tests for the Smart Energy integration."""
