"""Packaged band table data files."""
