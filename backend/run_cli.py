#!/usr/bin/env python
"""
Start the TickerStream CLI without installing the package
"""
from tickerstream.cli.main import app

if __name__ == "__main__":
    app()
