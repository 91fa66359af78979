"""
Core recording upload logic.

This module is framework-agnostic - it doesn't import boto3, read the
environment, or touch the filesystem directly. Collaborators are passed in
through the protocols in core.recording.protocols, so the pipeline can be
tested with in-memory fakes.
"""
