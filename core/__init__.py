# Core package for configuration, logging, errors and security

from .config import settings, LLMConfig, MapsConfig, SearchConfig
from .logging import setup_logging, get_logger
from .exceptions import setup_exception_handlers, APIException
from .middleware import setup_middleware
from .security import get_current_user_id
