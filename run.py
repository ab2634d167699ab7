#!/usr/bin/env python3
"""
Loan Book Entry Point

Starts the FastAPI server (port 8090 unless LOANBOOK_API_PORT says otherwise).
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from loanbook.api import run_server
from loanbook.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Loan Book...")
    print(f"Storage: {config.storage_backend} ({config.database_path})")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(debug=False)
    except KeyboardInterrupt:
        print("\nShutting down Loan Book...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
