"""
Component Test Layer Configuration

Structure:
    tests/component/
    ├── core/        NATS event bus delivery acknowledgement
    └── order/       OrderService, HTTP routes, clients, repository, handlers

Usage:
    pytest tests/component -v
    pytest tests/component/order -v
"""
import os

# Set testing environment BEFORE any imports
os.environ["ENV"] = "testing"
os.environ["ENVIRONMENT"] = "testing"
os.environ["NATS_ENABLED"] = "false"
