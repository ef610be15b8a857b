"""
Celery Configuration for CLM Gatekeeper
Handles async side effects of workflow transitions: e-mail, overdue reminders
"""
import os
from celery import Celery

# Set default Django settings
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clm_gatekeeper.settings')

app = Celery('clm_gatekeeper')

# Load config from Django settings with CELERY_ prefix
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks in all installed apps
app.autodiscover_tasks()
