"""Error kinds raised by the group store and the rule engine."""


class FocusGroupsError(Exception):
    """Base class for all Focus Groups errors."""


class DuplicateGroup(FocusGroupsError, ValueError):
    def __init__(self, title: str):
        super().__init__(f"Group already exists: {title}")
        self.title = title


class InvalidURL(FocusGroupsError, ValueError):
    def __init__(self, url: str):
        super().__init__(f"Invalid URL: {url}")
        self.url = url


class DuplicateWebsite(FocusGroupsError, ValueError):
    def __init__(self, title: str, website: str):
        super().__init__(f"Website {website} already exists in group {title}")
        self.title = title
        self.website = website


class GroupNotFound(FocusGroupsError, KeyError):
    def __init__(self, title: str):
        super().__init__(title)
        self.title = title

    def __str__(self) -> str:
        return f"No such group: {self.title}"


class StorageUnavailable(FocusGroupsError):
    """The persistent store could not be read or written.

    Recoverable: in-memory state is left unchanged and the next operation
    writes the full snapshot again.
    """
