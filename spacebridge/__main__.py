#!/usr/bin/env python3
"""
Main execution module for the Spacelift account migration tool
"""

from spacebridge.cli.commands import main

if __name__ == "__main__":
    main()
