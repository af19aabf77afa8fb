"""Named groups of blocked websites, mirrored into the persistent store."""

import copy
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from config import GROUPS_KEY
from domains import normalize, validate
from errors import (
    DuplicateGroup,
    DuplicateWebsite,
    GroupNotFound,
    InvalidURL,
)
from storage import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class Group:
    title: str
    websites: list[str] = field(default_factory=list)
    active: bool = True
    expanded: bool = True

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "Group":
        """
        Build a Group from its persisted form.

        Raises:
            ValueError: If the record does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Group record must be an object, got {type(data).__name__}")

        title = data.get("title")
        websites = data.get("websites", [])
        if not isinstance(title, str) or not title:
            raise ValueError(f"Group record has no valid title: {data!r}")
        if not isinstance(websites, list) or not all(isinstance(w, str) and w for w in websites):
            raise ValueError(f"Group {title!r} has an invalid websites list")

        # Keep the first occurrence of each website
        unique = list(dict.fromkeys(websites))
        return cls(
            title=title,
            websites=unique,
            active=bool(data.get("active", True)),
            expanded=bool(data.get("expanded", True)),
        )


def decode_groups(value: Any) -> list[Group]:
    """
    Turn the persisted value into groups.

    A missing value (None) is an empty collection.

    Raises:
        ValueError: If the value is malformed or repeats a title.
    """
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"Expected a list of groups, got {type(value).__name__}")

    groups = [Group.from_dict(item) for item in value]
    titles = [g.title for g in groups]
    if len(set(titles)) != len(titles):
        raise ValueError("Duplicate group titles in persisted groups")
    return groups


def encode_groups(groups: list[Group]) -> list[dict]:
    return [g.to_dict() for g in groups]


def read_groups(store: KeyValueStore, key: str = GROUPS_KEY) -> list[Group]:
    """
    Strict read of the persisted groups.

    Unlike GroupStore.load(), errors propagate so the caller can tell
    "no groups" apart from "could not read groups".
    """
    return decode_groups(store.get(key))


class GroupStore:
    """
    In-memory collection of groups and the operations that mutate it.

    The in-memory list is authoritative; every mutation is saved in full
    before the operation returns. A mutation is applied to a working copy
    first and committed only after the save succeeds, so a storage failure
    leaves the collection as it was.
    """

    def __init__(self, store: KeyValueStore, key: str = GROUPS_KEY):
        self.store = store
        self.key = key
        self._groups: list[Group] = []

    @property
    def groups(self) -> list[Group]:
        return copy.deepcopy(self._groups)

    def load(self) -> list[Group]:
        """
        Read groups from the store into memory.

        Returns an empty collection when nothing is stored or the stored
        value is malformed. StorageUnavailable propagates.
        """
        try:
            groups = read_groups(self.store, self.key)
        except ValueError as e:
            logger.warning("Ignoring malformed groups in store: %s", e)
            groups = []
        self._groups = groups
        return self.groups

    def save(self, groups: Optional[list[Group]] = None) -> None:
        """Overwrite the persisted collection with a full snapshot."""
        if groups is None:
            groups = self._groups
        self.store.set(self.key, encode_groups(groups))

    def _commit(self, groups: list[Group]) -> None:
        self.save(groups)
        self._groups = groups

    def _working_copy(self) -> list[Group]:
        return copy.deepcopy(self._groups)

    @staticmethod
    def _find(groups: list[Group], title: str) -> Optional[Group]:
        for group in groups:
            if group.title == title:
                return group
        return None

    def _require(self, groups: list[Group], title: str) -> Group:
        group = self._find(groups, title.strip())
        if group is None:
            raise GroupNotFound(title)
        return group

    def get(self, title: str) -> Group:
        return copy.deepcopy(self._require(self._groups, title))

    def add_group(self, title: str) -> bool:
        """
        Append a new, active and expanded group with no websites.

        Returns False without changes when the title is blank.

        Raises:
            DuplicateGroup: If a group with this title exists.
        """
        title = title.strip()
        if not title:
            return False
        if self._find(self._groups, title) is not None:
            raise DuplicateGroup(title)

        groups = self._working_copy()
        groups.append(Group(title=title))
        self._commit(groups)
        logger.info("Added group %r", title)
        return True

    def remove_group(self, title: str) -> bool:
        """Remove the group with this title. Returns False if there is none."""
        title = title.strip()
        groups = self._working_copy()
        for index, group in enumerate(groups):
            if group.title == title:
                del groups[index]
                self._commit(groups)
                logger.info("Removed group %r", title)
                return True

        logger.info("No group %r to remove", title)
        return False

    def add_website(self, title: str, raw_url: str) -> bool:
        """
        Add the base domain of raw_url to a group.

        Returns True if the website was added, False when the input is
        blank or the domain is already in the group.

        Raises:
            InvalidURL: If raw_url is not a valid domain or URL.
            GroupNotFound: If there is no group with this title.
        """
        raw_url = raw_url.strip()
        if not raw_url:
            return False
        if not validate(raw_url):
            raise InvalidURL(raw_url)
        website = normalize(raw_url)

        groups = self._working_copy()
        group = self._require(groups, title)
        if website in group.websites:
            logger.info("%s", DuplicateWebsite(title, website))
            return False

        group.websites.append(website)
        self._commit(groups)
        logger.info("Added %s to group %r", website, title)
        return True

    def remove_website(self, title: str, website: str) -> bool:
        """Remove a website from a group. Returns False if it was not there."""
        groups = self._working_copy()
        group = self._require(groups, title)
        if website not in group.websites:
            return False

        group.websites.remove(website)
        self._commit(groups)
        logger.info("Removed %s from group %r", website, title)
        return True

    def toggle_active(self, title: str) -> bool:
        """Flip whether a group is enforced. Returns the new value."""
        groups = self._working_copy()
        group = self._require(groups, title)
        group.active = not group.active
        self._commit(groups)
        logger.info("Group %r is now %s", title, "active" if group.active else "inactive")
        return group.active

    def toggle_expanded(self, title: str) -> bool:
        """Flip the display-only expanded flag. Returns the new value."""
        groups = self._working_copy()
        group = self._require(groups, title)
        group.expanded = not group.expanded
        self._commit(groups)
        return group.expanded
