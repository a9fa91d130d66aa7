#!/usr/bin/env python3
"""
Package entry point for redshift_etl.
Allows the package to be run as: python -m redshift_etl
"""

from redshift_etl.cli.main import main

if __name__ == '__main__':
    main()
