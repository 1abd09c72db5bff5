"""
Dynamic representation of one Launchpad API object or collection page.

Every typed wrapper in lpad.sdk holds a Value and forwards to it. A Value
resolves locations, follows *_link fields, performs GET/POST/PATCH and walks
paginated collections.
"""

import json
import posixpath
import urllib.parse
import urllib.request
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

from lpad.core.client import (
    ContentTypeError,
    HTTPError,
    LpadError,
    MissingLocationError,
    NoEntriesError,
    ProtocolError,
    Response,
    TooManyRedirectsError,
    Transport,
    default_transport,
)

if TYPE_CHECKING:
    from lpad.core.session import Session

Params = dict[str, str]

JSON_TYPE = "application/json"
FORM_TYPE = "application/x-www-form-urlencoded"

REDIRECT_CODES = (301, 302, 303, 307)
# 209 is the API's "content returned" answer to PATCH.
OK_CODES = (200, 209)
MAX_REDIRECTS = 10


def resolve(base: str, own: str, part: str) -> str:
    """
    Compute the absolute location for part, without any I/O.

    Args:
        base: API root that absolute paths are rooted at
        own: Location of the value part is relative to
        part: Empty string, full URL, absolute path or relative path

    Returns:
        The resolved location

    """
    if not part:
        return own
    if part.startswith(("http://", "https://")):
        return part
    root = base if part.startswith("/") else own
    scheme, netloc, root_path, _, _ = urllib.parse.urlsplit(root)
    part, _, query = part.partition("?")

    joined = "/".join(p for p in (root_path, part) if p)
    path = posixpath.normpath(joined) if joined else ""
    if path.startswith("//"):
        path = "/" + path.lstrip("/")
    if path and netloc and not path.startswith("/"):
        path = "/" + path
    path = urllib.parse.quote(path, safe="/~+@:!$&'()*,;=%")
    return urllib.parse.urlunsplit((scheme, netloc, path, query, ""))


def _merge_query(url: str, query: str) -> str:
    """Append query to whatever query url already carries."""
    head, _, existing = url.partition("?")
    merged = "&".join(q for q in (existing, query) if q)
    return f"{head}?{merged}" if merged else head


def _decode(body: bytes) -> dict[str, Any]:
    """Parse a JSON body into a field map, wrapping bare lists."""
    try:
        data = json.loads(body)
    except ValueError as e:
        raise ProtocolError(f"Invalid JSON response: {e}") from e
    if data is None:
        return {}
    if isinstance(data, list):
        return {"value": data}
    if not isinstance(data, dict):
        raise ProtocolError(f"Unexpected JSON document: {body[:80]!r}")
    return data


class Value:
    """
    The dynamic layer under every typed Launchpad object.

    A Value is "unfetched" until get/post/patch succeeds against it, and may
    be fetched again at any time; each fetch replaces the fields wholesale.
    Values are not safe for concurrent mutation; use one Value per thread.

    Example:
        me = root.location("/people/+me").get()
        print(me.string_field("display_name"))
        for nick in me.link("irc_nicknames_collection_link").get():
            print(nick.string_field("nickname"))

    """

    def __init__(
        self,
        session: "Session | None" = None,
        base_loc: str = "",
        loc: str = "",
        fields: dict[str, Any] | None = None,
    ):
        self._session = session
        self._base_loc = base_loc
        self.loc = loc
        self._fields = fields
        self.pending: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"<Value {self.abs_loc!r}>"

    @property
    def session(self) -> "Session | None":
        """Session used to sign requests, or None for anonymous access."""
        return self._session

    @property
    def base_loc(self) -> str:
        """API root; absolute paths given to location() are rooted here."""
        return self._base_loc

    @property
    def abs_loc(self) -> str:
        """Canonical URL of this value, preferring its self_link field."""
        return self.string_field("self_link") or self.loc

    @property
    def fields(self) -> dict[str, Any]:
        """Field map from the last fetch, plus local set_field writes."""
        if self._fields is None:
            self._fields = {}
        return self._fields

    # =========================================================================
    # Field access
    # =========================================================================

    def string_field(self, key: str) -> str:
        value = self.fields.get(key)
        return value if isinstance(value, str) else ""

    def int_field(self, key: str) -> int:
        value = self.fields.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(value)
        return 0

    def float_field(self, key: str) -> float:
        value = self.fields.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return 0.0

    def bool_field(self, key: str) -> bool:
        value = self.fields.get(key)
        return value if isinstance(value, bool) else False

    def set_field(self, key: str, value: int | str | bool) -> None:
        """
        Change a field locally and queue it for the next patch().

        Raises:
            TypeError: If value is not an int, str or bool

        """
        # bool first: it is an int subclass and must stay a JSON boolean.
        if isinstance(value, bool):
            new = value
        elif isinstance(value, int):
            new = int(value)
        elif isinstance(value, str):
            new = value
        else:
            raise TypeError(f"Unsupported value type for set_field: {value!r}")
        self.pending[key] = new
        self.fields[key] = new

    # =========================================================================
    # Navigation
    # =========================================================================

    def location(self, loc: str) -> "Value":
        """
        Return an unfetched Value for loc.

        loc may be a full URL, an absolute path (rooted at base_loc) or a
        path relative to this value's own location.
        """
        return Value(self._session, self._base_loc, resolve(self._base_loc, self.abs_loc, loc))

    def link(self, key: str) -> "Value | None":
        """Return an unfetched Value for the URL in field key, or None."""
        link = self.fields.get(key)
        if not isinstance(link, str):
            return None
        return self.location(link)

    def get_location(self, loc: str, params: Params | None = None) -> "Value":
        """Shorthand for location(loc).get(params)."""
        return self.location(loc).get(params)

    def get_link(self, key: str, params: Params | None = None) -> "Value":
        """
        Follow a link field that must exist and fetch its target.

        Raises:
            LpadError: If the field is missing or not a string

        """
        value = self.link(key)
        if value is None:
            raise LpadError(f'Field "{key}" not found in value', details={"location": self.abs_loc})
        return value.get(params)

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    def get(self, params: Params | None = None) -> "Value":
        """
        Fetch this value, following redirects, and return it.

        Since the value itself is returned, calls may be chained:

            branch = proposal.link("source_branch_link").get()

        """
        return self._perform("GET", params)

    def post(self, params: Params | None = None) -> "Value":
        """Invoke an action at this location; the result is a new Value."""
        return self._perform("POST", params)

    def patch(self) -> None:
        """Send the pending set_field changes to the server."""
        body = json.dumps(self.pending).encode("utf-8")
        self._perform("PATCH", None, body)
        self.pending = {}

    # =========================================================================
    # Collections
    # =========================================================================

    def total_size(self) -> int:
        """Total number of entries in a collection."""
        return self.int_field("total_size")

    def start_index(self) -> int:
        """Offset of the first entry of this collection page."""
        return self.int_field("start")

    def __iter__(self) -> Iterator["Value"]:
        """
        Yield one Value per entry, fetching further pages on demand.

        Watch out for very large collections.

        Raises:
            NoEntriesError: If a page has no entries list

        """
        page = self
        while True:
            entries = page.fields.get("entries")
            if not isinstance(entries, list):
                raise NoEntriesError()
            for entry in entries:
                if not isinstance(entry, dict):
                    continue
                link = entry.get("self_link")
                yield Value(self._session, self._base_loc, link if isinstance(link, str) else "", entry)
            next_page = page.link("next_collection_link")
            if next_page is None:
                return
            page = next_page.get()

    def for_each(self, visit: Callable[["Value"], Any]) -> None:
        """
        Call visit with every entry of the collection, across pages.

        An exception raised by visit stops the iteration and propagates.
        """
        for value in self:
            visit(value)

    # =========================================================================
    # Request execution
    # =========================================================================

    @property
    def _transport(self) -> Transport:
        if self._session is not None:
            return self._session.transport
        return default_transport

    def _request(self, method: str, url: str, query: str, body: bytes | None) -> Response:
        """Build, sign and send one request."""
        headers = {"Accept": JSON_TYPE}
        if method == "POST":
            # Parameters travel only in the form body.
            body = query.encode("ascii")
            headers["Content-Type"] = FORM_TYPE
        else:
            url = _merge_query(url, query)
            if body is not None:
                headers["Content-Type"] = JSON_TYPE

        request = urllib.request.Request(url, data=body, headers=headers, method=method)
        if self._session is not None:
            self._session.sign(request)
        return self._transport.send(request)

    def _perform(self, method: str, params: Params | None, body: bytes | None = None) -> "Value":
        query = urllib.parse.urlencode(params or {})
        target = self.abs_loc
        result = self
        if method == "POST":
            result = Value(self._session, self._base_loc, target)

        for _ in range(MAX_REDIRECTS + 1):
            response = self._request(method, target, query, body)

            if method == "POST" and response.status == 201 and response.location:
                created = Value(self._session, self._base_loc, urllib.parse.urljoin(target, response.location))
                return created.get()

            if method == "GET" and response.status in REDIRECT_CODES:
                if not response.location:
                    raise MissingLocationError(response.status)
                target = urllib.parse.urljoin(target, response.location)
                self.loc = target
                continue

            if method == "PATCH" and 200 <= response.status < 300 and response.status != 209:
                return result

            if response.status not in OK_CODES:
                raise HTTPError(response.status, response.body)

            if response.content_type != JSON_TYPE:
                raise ContentTypeError(response.content_type)

            result._fields = _decode(response.body)
            return result

        raise TooManyRedirectsError(MAX_REDIRECTS)
