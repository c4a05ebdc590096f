"""
WSGI entrypoint for Menu Digital.

When TABLEORDERS_REAPER_AUTOSTART is on, the stale table reaper runs as a
background thread of this process. Prefer `manage.py run_table_reaper` on
multi-worker deployments; the reaper is safe to run from several processes
(skip-locked reads) but one worker is enough.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "menudigital.settings")

application = get_wsgi_application()

from django.conf import settings  # noqa: E402

if settings.TABLEORDERS_REAPER_AUTOSTART:
    from tableorders.services.reaper import default_reaper  # noqa: E402

    default_reaper.start()
