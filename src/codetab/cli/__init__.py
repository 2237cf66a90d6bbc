"""Command line interface for codetab."""
