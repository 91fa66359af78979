"""
Recording uploader - ships meeting recordings to object storage.

This package contains the complete service:
- core: Framework-agnostic upload pipeline (whole files and segments)
- infrastructure: S3 storage, local filesystem, directory watching
- config: Application configuration
"""

__version__ = "0.1.0"
