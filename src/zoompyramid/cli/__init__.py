"""Command-line interface for zoompyramid."""
