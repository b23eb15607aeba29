"""
Core package for shared utilities.

Configuration, structured logging, localization and the Celery application
used across the service.
"""
