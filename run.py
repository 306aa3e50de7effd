#!/usr/bin/env python3
"""
Loan Ledger Entry Point

Starts the FastAPI server with the loan ledger. Host, port and storage are
taken from LEDGER_* environment variables.
"""

import sys

from loan_ledger.api import run_server


if __name__ == "__main__":
    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down Loan Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
