"""Operator CLI for Reelcast."""
