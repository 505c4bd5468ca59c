"""FastAPI application and REST API endpoints.

This module contains:
- Main FastAPI application configuration
- Bearer-token authentication via Supabase
- Company, project and team endpoints
- Error-category to HTTP status mapping
"""
