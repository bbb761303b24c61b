#!/usr/bin/env python
"""
Hand to Heart - Main Entry Point
================================
Run the sign learning application.
"""

from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv(Path(__file__).parent / ".env")

from hand_to_heart.ui import main

if __name__ == "__main__":
    main()
