"""Cross-cutting utilities for the pipeline.

Modules:
    logging: Structured JSON logging for service modules.
    filesystem: Workspace path helpers for downloaded media.
"""
