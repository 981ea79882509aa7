#!/usr/bin/env python3
"""
Main entry point for the StreamFlow proxy.

This script starts the API server that classifies, resolves and proxies
video URLs for the browser player.
"""

import sys
import os

# Add the current directory to Python path to import our modules
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from streamflow.main import main

if __name__ == "__main__":
    main()
