"""Artifact digests."""
