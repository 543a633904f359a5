"""Tool handlers package."""

from tools.handlers.connection_handler import ConnectionHandler
from tools.handlers.profile_handler import ProfileHandler
from tools.handlers.query_handler import QueryHandler
from tools.handlers.schema_handler import SchemaHandler

HANDLER_CLASSES = (
    ConnectionHandler,
    ProfileHandler,
    QueryHandler,
    SchemaHandler,
)

__all__ = [
    'ConnectionHandler',
    'ProfileHandler',
    'QueryHandler',
    'SchemaHandler',
    'HANDLER_CLASSES',
]
