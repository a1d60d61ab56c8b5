# clinic_crm/limiter.py
# Lives in its own module so routers can import it without importing main.

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import get_settings

limiter = Limiter(key_func=get_remote_address, enabled=get_settings().rate_limit_enabled)
