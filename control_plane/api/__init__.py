# control_plane/api/__init__.py
"""
API routers
"""
