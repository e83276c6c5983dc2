"""
REST API module for reactorloom.

Provides FastAPI endpoints for:
- Listing migration lanes
- Previewing a migration of one Java source
"""
