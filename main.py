#!/usr/bin/env python3
"""
DDNS Reconciler - Main Entry Point

This is the main entry point for the DDNS Reconciler.
It can be run directly or imported as a module.
"""

from ddns_reconciler.cli.main import main

if __name__ == "__main__":
    main()
