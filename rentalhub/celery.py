import os
from celery import Celery
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file

# Set the default Django settings module for the 'celery' program.
if os.getenv('env', 'dev') == 'prod':
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rentalhub.settings.prod') # noqa
else:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rentalhub.settings.dev')

app = Celery('rentalhub')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

app.conf.update(
    broker_transport_options={'visibility_timeout': 3600},
    result_expires=3600,
    worker_max_tasks_per_child=1000,  # Restart worker after 1000 tasks
    worker_prefetch_multiplier=1,  # Disable prefetching
    task_acks_late=True,  # Only acknowledge tasks after they complete
    task_reject_on_worker_lost=True,  # Requeue tasks if worker dies
    beat_scheduler='django_celery_beat.schedulers:DatabaseScheduler',
)

# Load task modules from all registered Django app configs.
app.autodiscover_tasks()
