"""
Typed Launchpad objects built on the core Value.

Each type holds (never subclasses) a Value and projects its fields into
named, typed attributes. Setters only change the local copy; call patch()
to commit them.
"""

import logging
import os
import urllib.parse
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, TypeVar

from lpad.core.client import LpadError
from lpad.core.session import Auth, OAuth, Session, base_url_from_env, timeout_from_env
from lpad.core.value import Params, Value

E = TypeVar("E", bound="Entity")


class Entity:
    """Common behaviour of every typed wrapper."""

    def __init__(self, value: Value):
        self.value = value

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.abs_loc!r}>"

    @property
    def abs_loc(self) -> str:
        return self.value.abs_loc

    def get(self: E, params: Params | None = None) -> E:
        """Fetch (or refresh) the underlying value."""
        self.value.get(params)
        return self

    def patch(self) -> None:
        """Commit every change made through the setters."""
        self.value.patch()


class EntityList(Entity, ABC):
    """A collection whose entries are wrapped on the way out."""

    @abstractmethod
    def wrap(self, value: Value) -> Entity:
        """Project one collection entry into its typed wrapper."""

    def total_size(self) -> int:
        return self.value.total_size()

    def __iter__(self) -> Iterator[Any]:
        for value in self.value:
            yield self.wrap(value)

    def for_each(self, visit: Callable[[Any], Any]) -> None:
        """Call visit with every wrapped entry; an exception stops the walk."""
        for item in self:
            visit(item)


# =============================================================================
# People and Teams
# =============================================================================


class IRCNick(Entity):
    """A nick registered by a person on some IRC network."""

    @property
    def nick(self) -> str:
        return self.value.string_field("nickname")

    @nick.setter
    def nick(self, nick: str) -> None:
        self.value.set_field("nickname", nick)

    @property
    def network(self) -> str:
        return self.value.string_field("network")

    @network.setter
    def network(self, network: str) -> None:
        self.value.set_field("network", network)


class Person(Entity):
    """A person in Launchpad."""

    is_team = False

    @property
    def name(self) -> str:
        """Short unique name used in URLs, as in ~name."""
        return self.value.string_field("name")

    @name.setter
    def name(self, name: str) -> None:
        self.value.set_field("name", name)

    @property
    def display_name(self) -> str:
        """The name shown throughout Launchpad; usually the full name."""
        return self.value.string_field("display_name")

    @display_name.setter
    def display_name(self, name: str) -> None:
        self.value.set_field("display_name", name)

    def irc_nicks(self) -> list[IRCNick]:
        """Fetch every IRC nick registered by the person."""
        nicks = self.value.get_link("irc_nicknames_collection_link")
        return [IRCNick(v) for v in nicks]


class Team(Person):
    """A team in Launchpad. Teams share the person field set."""

    is_team = True


Member = Person | Team


def member(value: Value) -> Member:
    """Wrap a people entry as a Team or a Person, going by its is_team flag."""
    if value.bool_field("is_team"):
        return Team(value)
    return Person(value)


class PersonList(EntityList):
    def wrap(self, value: Value) -> Person:
        return Person(value)


class TeamList(EntityList):
    def wrap(self, value: Value) -> Team:
        return Team(value)


class MemberList(EntityList):
    """Mixed list of people and teams."""

    def wrap(self, value: Value) -> Member:
        return member(value)


# =============================================================================
# Projects
# =============================================================================


class Project(Entity):
    """A project in Launchpad."""

    @property
    def name(self) -> str:
        """Short name used in URLs: lowercase letters, digits, dots, hyphens, pluses."""
        return self.value.string_field("name")

    @name.setter
    def name(self, name: str) -> None:
        self.value.set_field("name", name)

    @property
    def display_name(self) -> str:
        """
        Name as it would appear in a paragraph.

        A project titled "The Foo Project" would usually be displayed as "Foo".
        """
        return self.value.string_field("display_name")

    @display_name.setter
    def display_name(self, name: str) -> None:
        self.value.set_field("display_name", name)

    @property
    def title(self) -> str:
        return self.value.string_field("title")

    @title.setter
    def title(self, title: str) -> None:
        self.value.set_field("title", title)

    @property
    def summary(self) -> str:
        return self.value.string_field("summary")

    @summary.setter
    def summary(self, summary: str) -> None:
        self.value.set_field("summary", summary)

    @property
    def description(self) -> str:
        return self.value.string_field("description")

    @description.setter
    def description(self, description: str) -> None:
        self.value.set_field("description", description)


# =============================================================================
# Branches and Merge Proposals
# =============================================================================


class Branch(Entity):
    """A Bazaar branch hosted in Launchpad."""

    @property
    def bzr_identity(self) -> str:
        """
        Shortest name for the branch.

        lp:project for a project's development focus, lp:project/series for
        a series focus, and lp:~user/project/branch-name otherwise.
        """
        return self.value.string_field("bzr_identity")

    @property
    def unique_name(self) -> str:
        return self.value.string_field("unique_name")

    @property
    def web_page(self) -> str:
        return self.value.string_field("web_link")

    def propose_merge(self, stub: "MergeStub") -> "MergeProposal":
        """
        Propose this branch for merging into stub.target.

        Args:
            stub: Target branch and proposal details

        Returns:
            The created MergeProposal

        Raises:
            LpadError: If the stub has no target branch

        """
        if stub.target is None:
            raise LpadError("Missing target branch")
        params: Params = {
            "ws.op": "createMergeProposal",
            "target_branch": stub.target.abs_loc,
        }
        if stub.description:
            params["initial_comment"] = stub.description
        if stub.commit_message:
            params["commit_message"] = stub.commit_message
        if stub.needs_review:
            params["needs_review"] = "true"
        if stub.prereq is not None:
            params["prerequisite_branch"] = stub.prereq.abs_loc
        return MergeProposal(self.value.post(params))


@dataclass
class MergeStub:
    """Details for Branch.propose_merge."""

    target: Branch | None = None
    description: str = ""
    commit_message: str = ""
    needs_review: bool = False
    prereq: Branch | None = None


class MergeProposal(Entity):
    """A request to merge one branch into another."""

    @property
    def description(self) -> str:
        """Introductory comment of the proposal."""
        return self.value.string_field("description")

    @property
    def status(self) -> str:
        """Queue status, e.g. "Needs review" or "Work in progress"."""
        return self.value.string_field("queue_status")

    @property
    def commit_message(self) -> str:
        return self.value.string_field("commit_message")

    @property
    def email(self) -> str:
        """Address that adds comments to the proposal conversation."""
        return self.value.string_field("address")

    @property
    def web_page(self) -> str:
        return self.value.string_field("web_link")

    def source(self) -> Branch:
        return Branch(self.value.get_link("source_branch_link"))

    def target(self) -> Branch:
        return Branch(self.value.get_link("target_branch_link"))

    def prereq(self) -> Branch:
        return Branch(self.value.get_link("prerequisite_branch_link"))


# =============================================================================
# Bugs
# =============================================================================


@dataclass
class BugStub:
    """Details necessary for creating a new bug."""

    title: str
    description: str
    target: Entity  # Project, source package or distribution
    private: bool = False
    security_related: bool = False
    tags: list[str] = field(default_factory=list)


class Bug(Entity):
    """A bug in Launchpad."""

    @property
    def id(self) -> int:
        """The bug number."""
        return self.value.int_field("id")

    @property
    def title(self) -> str:
        return self.value.string_field("title")

    @title.setter
    def title(self, title: str) -> None:
        self.value.set_field("title", title)

    @property
    def description(self) -> str:
        return self.value.string_field("description")

    @description.setter
    def description(self, description: str) -> None:
        self.value.set_field("description", description)

    @property
    def tags(self) -> list[str]:
        return self.value.string_field("tags").split()

    @tags.setter
    def tags(self, tags: list[str]) -> None:
        self.value.set_field("tags", " ".join(tags))

    @property
    def private(self) -> bool:
        return self.value.bool_field("private")

    @private.setter
    def private(self, private: bool) -> None:
        self.value.set_field("private", private)

    @property
    def security_related(self) -> bool:
        """True if the bug describes a security vulnerability."""
        return self.value.bool_field("security_related")

    @security_related.setter
    def security_related(self, related: bool) -> None:
        self.value.set_field("security_related", related)

    def link_branch(self, branch: Branch) -> None:
        """Associate a branch with this bug."""
        self.value.post({"ws.op": "linkBranch", "branch": branch.abs_loc})


# =============================================================================
# Root
# =============================================================================


class Root(Entity):
    """
    Entrance to the Launchpad API.

    Example:
        root = lpad.login(lpad.PRODUCTION, lpad.OAuth(token, secret))
        me = root.me()
        print(me.display_name)

    """

    def me(self) -> Person:
        """The person authenticated in the current session."""
        return Person(self.value.get_location("/people/+me"))

    def person(self, name: str) -> Member:
        return member(self.value.get_location("/~" + urllib.parse.quote(name, safe="")))

    def project(self, name: str) -> Project:
        return Project(self.value.get_location("/" + urllib.parse.quote(name, safe="")))

    def bug(self, bug_id: int) -> Bug:
        return Bug(self.value.get_location(f"/bugs/{bug_id}"))

    def create_bug(self, stub: BugStub) -> Bug:
        """
        Create a new bug with a bug task on stub.target.

        Args:
            stub: Title, description, target and flags of the bug

        Returns:
            The created Bug

        """
        params: Params = {
            "ws.op": "createBug",
            "title": stub.title,
            "description": stub.description,
            "target": stub.target.abs_loc,
        }
        if stub.tags:
            params["tags"] = " ".join(stub.tags)
        if stub.private:
            params["private"] = "true"
        if stub.security_related:
            params["security_related"] = "true"
        return Bug(self.value.location("/bugs").post(params))

    def branch(self, url: str) -> Branch:
        """
        Look up a branch by URL.

        Args:
            url: Short lp: form, or the web address under bazaar.launchpad.net

        """
        return Branch(self.value.get_location("/branches", {"ws.op": "getByUrl", "url": url}))

    def find_people(self, text: str) -> PersonList:
        """People whose name, display name or email match text."""
        return PersonList(self.value.get_location("/people", {"ws.op": "findPerson", "text": text}))

    def find_teams(self, text: str) -> TeamList:
        """Teams whose name, display name or email match text."""
        return TeamList(self.value.get_location("/people", {"ws.op": "findTeam", "text": text}))

    def find_members(self, text: str) -> MemberList:
        """People and teams whose name, display name or email match text."""
        return MemberList(self.value.get_location("/people", {"ws.op": "find", "text": text}))


def login(
    base_url: str | None = None,
    auth: Auth | None = None,
    logger: logging.Logger | None = None,
    timeout: int | None = None,
) -> Root:
    """
    Start a session and return the API root.

    Args:
        base_url: API root (or LPAD_BASE_URL env var, else PRODUCTION)
        auth: Authenticator; defaults to OAuth from LPAD_TOKEN/LPAD_TOKEN_SECRET
            when those are set, otherwise the session is anonymous
        logger: Logger for request/response debug dumps
        timeout: Request timeout in seconds (or LPAD_TIMEOUT env var)

    Returns:
        Root rooted at base_url, not yet fetched

    """
    base_url = base_url_from_env(base_url)
    if auth is None and os.environ.get("LPAD_TOKEN"):
        auth = OAuth.from_env()
    if auth is not None:
        auth.login(base_url)
    session = Session(auth, logger=logger, timeout=timeout_from_env(timeout))
    return Root(Value(session, base_url, base_url))
