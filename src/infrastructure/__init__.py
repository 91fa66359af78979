"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- storage: Object storage (S3 and S3-compatible)
- filesystem: Local file access and directory watching

These wrappers implement the protocols the recording core depends on.
"""
