"""Command-line interface for the Spacelift account migration tool."""
