"""Django configuration of the rental booking ledger.

Settings modules for each environment plus the WSGI, ASGI and Celery
entry points.
"""

# Import the Celery application as soon as Django starts. Without this
# the shared task registry will not be populated.
from .celery import app as celery_app  # noqa: F401
