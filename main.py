#!/usr/bin/env python3
"""
Court records harvester - main entry point.

Usage:
    python main.py crawl "Республика Татарстан" [--publish]
    python main.py schedule --every "every 5 minutes"
"""

from court_harvest.cli.main import main

if __name__ == "__main__":
    main()
