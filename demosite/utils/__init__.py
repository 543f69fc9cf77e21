"""
Utility modules for the demo site.

- helpers: date formatting for templates and JSON, URL safety checks
"""
