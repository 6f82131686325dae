"""
API Routes
"""
from capibara.api.routes import auth, logs, ssh_keys

__all__ = ["auth", "logs", "ssh_keys"]
