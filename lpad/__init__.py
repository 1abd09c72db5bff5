"""
lpad - Client for the Launchpad REST API.

Layers:
- core: Value (locations, links, GET/POST/PATCH, collections), sessions and transport
- sdk: Typed Launchpad objects projected over Value
"""

from lpad.core import (
    PRODUCTION,
    STAGING,
    Auth,
    ContentTypeError,
    HTTPError,
    LpadError,
    MissingLocationError,
    NoEntriesError,
    OAuth,
    Params,
    ProtocolError,
    Session,
    TooManyRedirectsError,
    Value,
)
from lpad.sdk import (
    Branch,
    Bug,
    BugStub,
    IRCNick,
    MemberList,
    MergeProposal,
    MergeStub,
    Person,
    PersonList,
    Project,
    Root,
    Team,
    TeamList,
    login,
    member,
)

__version__ = "0.1.0"
__all__ = [
    "PRODUCTION",
    "STAGING",
    "Auth",
    "Branch",
    "Bug",
    "BugStub",
    "ContentTypeError",
    "HTTPError",
    "IRCNick",
    "LpadError",
    "MemberList",
    "MergeProposal",
    "MergeStub",
    "MissingLocationError",
    "NoEntriesError",
    "OAuth",
    "Params",
    "Person",
    "PersonList",
    "Project",
    "ProtocolError",
    "Root",
    "Session",
    "Team",
    "TeamList",
    "TooManyRedirectsError",
    "Value",
    "login",
    "member",
]
