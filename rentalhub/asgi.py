"""
ASGI config for rentalhub project.

HTTP goes to Django; WebSocket connections are authenticated with the
bearer token and routed to the notification consumer.
"""

import os

if os.getenv('env', 'dev') == 'prod':
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rentalhub.settings.prod')
else:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rentalhub.settings.dev')

from django.core.asgi import get_asgi_application  # noqa: E402

django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from users.authentication import JWTAuthMiddlewareStack  # noqa: E402
from users.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": JWTAuthMiddlewareStack(
        URLRouter(websocket_urlpatterns)
    ),
})
