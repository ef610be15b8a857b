"""
CLM Gatekeeper initialization
Loads Celery app so it's available when Django starts
"""
from .celery import app as celery_app

__all__ = ('celery_app',)
