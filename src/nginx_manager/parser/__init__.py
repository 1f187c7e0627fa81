"""Parser package - Converts raw text into structured models.

Parsers do NOT touch the filesystem or run commands - they structure data
handed to them by scanners and stores.
"""

from nginx_manager.parser.access_log import AccessLogParser
from nginx_manager.parser.directives import Directive, scan, tokenize
from nginx_manager.parser.site_codec import SiteConfigCodec, validate_server_name

__all__ = [
    "AccessLogParser",
    "Directive",
    "SiteConfigCodec",
    "scan",
    "tokenize",
    "validate_server_name",
]
