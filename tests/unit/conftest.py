"""
Unit Test Layer Configuration

Structure:
    tests/unit/
    └── order/       Models, totals/paging arithmetic, configuration

Usage:
    pytest tests/unit -v
    pytest tests/unit -m unit -v
"""
