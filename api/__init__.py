"""
API module for the quote sharing system.
Provides the FastAPI REST API and the Strawberry GraphQL endpoint.
"""

__all__ = ['app', 'routes', 'models', 'graphql_schema']
