"""
Tracking Admin Module

HTTP access to the local event log and the remote dashboard query.
"""

from .factory import create_tracking_admin_module
from .routes import create_tracking_admin_blueprint

__all__ = ['create_tracking_admin_module', 'create_tracking_admin_blueprint']
