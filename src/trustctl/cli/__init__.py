"""Command line interface and the terminal collaborators actions use."""
