#!/usr/bin/env python3
"""
Wallet Ledger Entry Point

Starts the FastAPI server with the wallet ledger system.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from wallet_ledger.api import run_server
from wallet_ledger.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Wallet Ledger...")
    print(f"Store: {config.database_url}")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down Wallet Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
