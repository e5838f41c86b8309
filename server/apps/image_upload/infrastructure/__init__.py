"""Infrastructure layer for image upload app.

This package contains integrations with external systems:
- Streaming storage backends (S3-compatible object storage, filesystem)
- Django upload handler feeding multipart parts into sessions

Keep infrastructure concerns separate from business logic.
"""
