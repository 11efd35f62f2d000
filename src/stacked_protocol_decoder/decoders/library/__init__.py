"""Bundled example decoders."""
