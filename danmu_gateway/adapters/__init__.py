from .asgi import AsgiAdapter
from .base import PlatformAdapter, client_ip_from_headers
from .function_event import FunctionEventAdapter, FunctionHandler

__all__ = ['PlatformAdapter', 'client_ip_from_headers', 'AsgiAdapter', 'FunctionEventAdapter', 'FunctionHandler']
