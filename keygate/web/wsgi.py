"""
WSGI entry point.

    gunicorn keygate.web.wsgi:application
"""

from keygate.web.app import create_app

application = create_app()
