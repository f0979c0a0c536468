"""
Test suite for Binder Search.

This package contains all tests organized by component:
- test_algorithms/: Tests for the search engine building blocks and driver
- test_cli.py, test_config.py: Tests for the command line and configuration
"""
