"""Business logic layer for image upload app.

This package contains the upload pipeline:
- Limit checks for file type and size
- Upload configuration resolved from settings
- Upload sessions driving one request to a single outcome
- Client settings exposed to the pad editor
"""
