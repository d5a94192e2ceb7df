"""
WSGI config for rentalhub project.

It exposes the WSGI callable as a module-level variable named ``application``.
"""

import os

from django.core.wsgi import get_wsgi_application

if os.getenv('env', 'dev') == 'prod':
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rentalhub.settings.prod')
else:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rentalhub.settings.dev')

application = get_wsgi_application()
