"""Exceptions raised while parsing names and building connection trees."""

import logging

logger = logging.getLogger(__name__)


class DirectoryTreeError(Exception):
    """Base exception with a message, optionally logged when raised."""

    def __init__(self, message="A directory tree error occurred", log=False):
        self.message = message
        super().__init__(self.message)
        if log:
            logger.error(message)


class MalformedNameError(DirectoryTreeError, ValueError):
    """A distinguished name string could not be split into components.

    ``input`` holds the offending string and ``reason`` what was wrong with it.
    """

    def __init__(self, input: str, reason: str = "unparsable name", log=False):
        self.input = input
        self.reason = reason
        super().__init__(f"Malformed DN {input!r}: {reason}", log=log)
