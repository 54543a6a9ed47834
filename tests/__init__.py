"""
Quote Sharing System Test Suite
===============================

This package contains tests for the Quote Sharing System including:
- Unit tests for the store, quote engine, auth service, API and utilities
- Integration tests for the full REST and GraphQL request flow
"""
