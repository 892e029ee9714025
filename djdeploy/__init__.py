"""
djdeploy - Declarative deployment of Django applications.

This package describes a Django deployment as a resource and converges a
host to it: inferring settings, WSGI and manage.py locations, building the
DATABASES entry from a URL, running management commands and writing local
settings.
"""

__version__ = "0.1.0"

from .database import ENGINE_ALIASES, parse_database_url
from .errors import DeployError, FileAccessError, FileNotFound, InvalidURL, SubprocessFailure
from .provider import DeployResult, DjangoProvider, deploy
from .resolver import AttributeResolver, resolve_resource
from .resource import DjangoResource, ResolvedDjango
from .state import ConvergenceRun, DeploymentState

__all__ = [
    "ENGINE_ALIASES",
    "AttributeResolver",
    "ConvergenceRun",
    "DeployError",
    "DeployResult",
    "DeploymentState",
    "DjangoProvider",
    "DjangoResource",
    "FileAccessError",
    "FileNotFound",
    "InvalidURL",
    "ResolvedDjango",
    "SubprocessFailure",
    "deploy",
    "parse_database_url",
    "resolve_resource",
]
