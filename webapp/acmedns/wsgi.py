import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "acmedns.settings")

application = get_wsgi_application()

# Migrate before serving, a failed upgrade stops the server here
from domains.store import get_store  # noqa: E402

get_store()
