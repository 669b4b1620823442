#!/usr/bin/env python3
"""
Retail Banking Entry Point

Starts the FastAPI server for the retail banking engine.
"""

import sys

from retail_banking.api import run_server
from retail_banking.config import get_config


if __name__ == "__main__":
    config = get_config()
    print(f"Starting {config.bank_name}...")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(debug=False)
    except KeyboardInterrupt:
        print("\nShutting down...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
