"""Site configuration codec.

Reads one site file (a single nginx ``server`` block) into a SiteConfig and
writes a SiteConfig back as canonical nginx text.

Only a narrow subset of directives is understood: listen, server_name,
root, location blocks with proxy_pass, and the three SSL directives.
Everything else is ignored when reading and never written.
"""

import logging
import re

from nginx_manager.errors import InvalidDirectiveError, InvalidSiteNameError
from nginx_manager.model.site import LocationRule, SiteConfig, SslInfo, StorageClass
from nginx_manager.parser.directives import Directive, scan

logger = logging.getLogger(__name__)

INDENT = "    "

_VARIABLE = re.compile(r"\$\{\w+\}")
_FORBIDDEN_CHARS = re.compile(r"[;{}\"'#]")

# Written under every proxied location
PROXY_HEADERS = (
    ("Host", "$host"),
    ("X-Real-IP", "$remote_addr"),
)


class SiteConfigCodec:
    """Parse and render site configuration files.

    parse() is tolerant: a file that is not a usable site (no server_name or
    no listen) gives None instead of an error, since site directories often
    hold snippets and backups next to real sites.
    """

    def parse(
        self,
        text: str,
        storage_class: StorageClass = StorageClass.AVAILABLE,
    ) -> SiteConfig | None:
        """Parse site configuration text.

        Args:
            text: Raw file contents.
            storage_class: Directory the text was read from.

        Returns:
            SiteConfig, or None if server_name or listen is missing.
        """
        server = self._find_server(scan(text))

        server_name = self._first_value(server, "server_name")
        listen = self._first_value(server, "listen")
        if not server_name or not listen:
            logger.debug("Skipping config without server_name/listen")
            return None

        return SiteConfig(
            server_name=server_name,
            listen=listen,
            root=self._first_value(server, "root"),
            locations=self._parse_locations(server),
            ssl=self._parse_ssl(server),
            storage_class=storage_class,
        )

    def render(self, site: SiteConfig) -> str:
        """Render a site as an nginx server block.

        SSL settings are not written: certificates are added to existing
        files by certbot.
        """
        lines = [
            "server {",
            f"{INDENT}listen {check_directive_value('listen', site.listen)};",
            f"{INDENT}server_name {check_directive_value('server_name', site.server_name)};",
        ]
        if site.root:
            lines.append(f"{INDENT}root {check_directive_value('root', site.root)};")

        for location in site.locations:
            lines.append(f"{INDENT}location {check_directive_value('location', location.path)} {{")
            if location.proxy_target:
                lines.append(f"{INDENT * 2}proxy_pass {check_directive_value('proxy_pass', location.proxy_target)};")
                for header, value in PROXY_HEADERS:
                    lines.append(f"{INDENT * 2}proxy_set_header {header} {value};")
            lines.append(f"{INDENT}}}")

        lines.append("}")
        return "\n".join(lines) + "\n"

    def _find_server(self, directives: list[Directive]) -> Directive:
        """Return the first server block, or the whole text as a bare server body."""
        root = Directive(name="", block=directives)
        for directive in root.walk():
            if directive.name == "server" and directive.is_block:
                return directive
        return root

    @staticmethod
    def _first_value(scope: Directive, name: str) -> str:
        directive = scope.find(name)
        return directive.value.strip() if directive else ""

    def _parse_locations(self, server: Directive) -> list[LocationRule]:
        locations: list[LocationRule] = []
        for directive in server.walk():
            if directive.name != "location" or not directive.is_block:
                continue
            path = directive.value.strip()
            if not path:
                continue
            proxy_pass = directive.find("proxy_pass")
            target = proxy_pass.value.strip() if proxy_pass else ""
            locations.append(LocationRule(path=path, proxy_target=target or None))
        return locations

    def _parse_ssl(self, server: Directive) -> SslInfo | None:
        # All three directives are required; cert + key without protocols is not SSL
        certificate = self._first_value(server, "ssl_certificate")
        certificate_key = self._first_value(server, "ssl_certificate_key")
        protocols = server.find("ssl_protocols")

        if not (certificate and certificate_key and protocols and protocols.args):
            return None

        return SslInfo(
            certificate_path=certificate,
            certificate_key_path=certificate_key,
            protocols=tuple(protocols.args),
        )


def check_directive_value(directive: str, value: str) -> str:
    """Check that ``value`` reads back unchanged as the arguments of ``directive``.

    Accepted values are single-space separated words without terminators,
    braces (other than ``${var}``), quotes, comments or a trailing backslash.

    Raises:
        InvalidDirectiveError: If writing the value would change its meaning.
    """
    problem = None
    if not value or not value.strip():
        problem = "value is empty"
    elif value != " ".join(value.split()):
        problem = "value has leading, trailing or repeated whitespace"
    elif _FORBIDDEN_CHARS.search(_VARIABLE.sub("", value)):
        problem = "value contains ; { } \" ' or #"
    elif value.endswith("\\"):
        problem = "value ends with a backslash"

    if problem:
        raise InvalidDirectiveError(f"Invalid {directive} {value!r}: {problem}")
    return value


def validate_server_name(name: str) -> str:
    """Check that a server name is safe to use as a file name.

    Raises:
        InvalidSiteNameError: If the name is empty or could leave its directory.
    """
    cleaned = (name or "").strip()
    if not cleaned or cleaned in {".", ".."} or "/" in cleaned or "\\" in cleaned or "\0" in cleaned:
        raise InvalidSiteNameError(f"Invalid site name: {name!r}")
    return cleaned
